"""
The packer for communities
"""
from .base import Packer
from ..content import schema
from ..content.constants import COMMUNITY
from ..exceptions import UnsupportedOperation

class CommunityPacker(Packer):
    """
    a Packer for Community objects.  A community AIP carries the community's identity, its
    metadata attributes, and its logo (if it has one).
    """

    # the persistent community attributes; see aipack.content.schema
    FIELDS = schema.fields_for(COMMUNITY)

    def __init__(self, community, archfmt=None, config=None, log=None):
        super(CommunityPacker, self).__init__(community, archfmt, config, log)

    @property
    def community(self):
        return self._node

    @community.setter
    def community(self, community):
        self._node = community

    def pack(self, packdir):
        with self._new_bag(packdir) as bag:
            self._write_object_properties(bag)
            self._write_metadata(bag, self.FIELDS)
            self._write_logo(bag)
            bag.close()
            archive = bag.deflate(self.archfmt)

        self.log.info("Packed community %s into %s", self.community.handle, archive)
        return archive

    def unpack(self, archive):
        self._check_archive(archive)
        with self._new_bag(archive) as bag:
            self._replay_metadata(bag, self.FIELDS)
            self._restore_logo(bag)
            self.community.update()

        self.log.info("Restored community %s from %s", self.community.handle, archive)

    def size(self, method=None):
        size = 0
        logo = self.community.logo
        if logo is not None:
            size += logo.size

        # sub-communities first, then collections
        return size + self._children_size(self.community.subcommunities +
                                          self.community.collections, method)

    def set_content_filter(self, filter):
        # communities have no filterable content
        pass

    def set_reference_filter(self, filter):
        raise UnsupportedOperation("reference filtering for communities")
