"""
The content-tree interface:  the objects that AIPs are packed from and restored into, and the
stores that hold them.
"""
from .constants import COMMUNITY, COLLECTION, ITEM
from .base import (ContentStore, ContentNode, Community, Collection, Item, Bitstream,
                   ANONYMOUS)
from .inmem import InMemoryContentStore
from .fsbased import FSBasedContentStore
