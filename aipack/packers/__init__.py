"""
Packers:  classes that pack content objects into archival information packages (AIPs) and
restore content objects from them.  Use :py:func:`~aipack.packers.factory.instance` to get the
packer for a particular object.
"""
from .base import Packer
from .community import CommunityPacker
from .collection import CollectionPacker
from .item import ItemPacker, BundleFilter
from .factory import instance, register, supported_types
