from .link import Link
from .link_key import LinkKey
from .click import Click
from .unique_visitor import UniqueVisitor

__all__ = ["Link", "LinkKey", "Click", "UniqueVisitor"]
