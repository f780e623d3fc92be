"""
The packer for collections
"""
from .base import Packer
from ..content import schema
from ..content.constants import COLLECTION
from ..exceptions import UnsupportedOperation

class CollectionPacker(Packer):
    """
    a Packer for Collection objects.  A collection AIP carries the collection's identity, its
    metadata attributes, and its logo (if it has one); its items are packed into AIPs of their own.
    """

    # the persistent collection attributes; see aipack.content.schema
    FIELDS = schema.fields_for(COLLECTION)

    def __init__(self, collection, archfmt=None, config=None, log=None):
        super(CollectionPacker, self).__init__(collection, archfmt, config, log)

    @property
    def collection(self):
        return self._node

    @collection.setter
    def collection(self, collection):
        self._node = collection

    def pack(self, packdir):
        with self._new_bag(packdir) as bag:
            self._write_object_properties(bag)
            self._write_metadata(bag, self.FIELDS)
            self._write_logo(bag)
            bag.close()
            archive = bag.deflate(self.archfmt)

        self.log.info("Packed collection %s into %s", self.collection.handle, archive)
        return archive

    def unpack(self, archive):
        self._check_archive(archive)
        with self._new_bag(archive) as bag:
            self._replay_metadata(bag, self.FIELDS)
            self._restore_logo(bag)
            self.collection.update()

        self.log.info("Restored collection %s from %s", self.collection.handle, archive)

    def size(self, method=None):
        size = 0
        logo = self.collection.logo
        if logo is not None:
            size += logo.size
        return size + self._children_size(self.collection.items, method)

    def set_content_filter(self, filter):
        pass

    def set_reference_filter(self, filter):
        raise UnsupportedOperation("reference filtering for collections")
