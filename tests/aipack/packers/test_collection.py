import os, sys, pdb, logging
from io import BytesIO
import unittest as test

from aipack.testing import *
from aipack.content import InMemoryContentStore
from aipack.packers.collection import CollectionPacker
from aipack.bagit import Bag
from aipack.constants import OBJFILE, MDFILE, NORECURSE
from aipack.exceptions import MissingArchive, UnsupportedOperation

def setUpModule():
    ensure_tmpdir()

def tearDownModule():
    rmtmpdir()

class TestCollectionPacker(test.TestCase):

    def setUp(self):
        self.tf = Tempfiles()
        self.workdir = self.tf.mkdir("work")
        self.store = InMemoryContentStore(foruser="alice")

        self.comm = self.store.create_community()
        self.coll = self.store.create_collection(self.comm)
        self.coll.set_metadata("name", "Theses")
        self.coll.set_metadata("license", "Deposit license text")
        self.coll.set_metadata("provenance_description", "Migrated")
        self.coll.set_logo(BytesIO(b"GIF89a"))
        self.coll.update()

        self.item = self.store.create_item(self.coll)
        self.item.add_bitstream("ORIGINAL", "thesis.pdf", BytesIO(b"%PDF" * 10))
        self.item.add_bitstream("THUMBNAIL", "thesis.jpg", BytesIO(b"JPEG"))
        self.item.update()

        self.packer = CollectionPacker(self.store.get(self.coll.handle))

    def tearDown(self):
        self.tf.clean()

    def test_pack(self):
        archive = self.packer.pack(os.path.join(self.workdir, "theses"))
        self.assertEqual(os.listdir(self.workdir), ["theses.zip"])

        with Bag(archive) as bag:
            props = bag.flat_reader(OBJFILE)
            self.assertEqual(props.get_property("OBJECT_TYPE"), "collection")
            self.assertEqual(props.get_property("OBJECT_ID"), self.coll.handle)
            self.assertEqual(props.get_property("OWNER_ID"), self.comm.handle)

            with bag.xml_reader(MDFILE) as reader:
                reader.find_stanza("metadata")
                self.assertEqual([v.name for v in reader],
                                 ["name", "provenance_description", "license"])

            # items are packed separately
            self.assertEqual(list(bag.payload_names()), ["logo"])

    def test_roundtrip(self):
        archive = self.packer.pack(os.path.join(self.workdir, "theses"))

        target = self.store.create_collection(self.comm)
        self.assertEqual(target.items, [])
        CollectionPacker(target).unpack(archive)

        target = self.store.get(target.handle)
        self.assertEqual(target.get_metadata("name"), "Theses")
        self.assertEqual(target.get_metadata("license"), "Deposit license text")
        self.assertEqual(target.get_metadata("provenance_description"), "Migrated")
        self.assertEqual(target.logo.size, 6)
        self.assertEqual(target.items, [])

    def test_unpack_missing(self):
        with self.assertRaises(MissingArchive) as cm:
            self.packer.unpack(os.path.join(self.workdir, "goob.zip"))
        self.assertEqual(str(cm.exception), "Missing archive for collection: " + self.coll.handle)

    def test_size(self):
        self.assertEqual(self.packer.size(), 6 + 40 + 4)
        self.assertEqual(self.packer.size(NORECURSE), 6)

        coll = self.store.create_collection(self.comm)
        self.assertEqual(CollectionPacker(coll).size(), 0)

    def test_filters(self):
        self.packer.set_content_filter("ORIGINAL")
        self.assertEqual(self.packer.size(), 6 + 40 + 4)
        with self.assertRaises(UnsupportedOperation):
            self.packer.set_reference_filter("ORIGINAL")


if __name__ == '__main__':
    test.main()
