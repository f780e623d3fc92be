"""
The factory for obtaining the right :py:class:`~aipack.packers.base.Packer` for a content object
"""
from ..content.constants import COMMUNITY, COLLECTION, ITEM
from ..exceptions import UnsupportedOperation
from .community import CommunityPacker
from .collection import CollectionPacker
from .item import ItemPacker

_packers = {
    COMMUNITY:  CommunityPacker,
    COLLECTION: CollectionPacker,
    ITEM:       ItemPacker
}

def instance(node, archfmt: str=None, config=None, log=None):
    """
    return a new Packer bound to the given content object.
    :param ContentNode node:  the content object to pack or unpack into
    :param str      archfmt:  the serialization format for AIPs
    :param dict      config:  the packer configuration.  If the configuration has a property
                              named after the object's type (e.g. "item"), its value will be
                              merged over the rest of the configuration for that packer.
    :raise UnsupportedOperation:  if there is no packer for the object's type
    """
    if node is None:
        raise ValueError("instance(): a content object is required")
    cls = _packers.get(node.type)
    if cls is None:
        raise UnsupportedOperation("packing %s objects" % node.type)

    if config is None:
        config = {}
    packer = cls(node, archfmt, _config_for(node.type, config), log)

    # packers for descendants start from the shared configuration
    packer._basecfg = config
    return packer

def _config_for(objtype, config):
    if not isinstance(config.get(objtype), dict):
        return config
    out = dict(config)
    out.update(out.pop(objtype))
    return out

def register(objtype: str, cls):
    """
    register the Packer class to use for objects of the given type, replacing any previous one
    """
    _packers[objtype] = cls

def supported_types():
    """
    return the object types that packers are available for
    """
    return list(_packers.keys())
