import os, sys, pdb, logging
from io import BytesIO
import unittest as test

from aipack.testing import *
from aipack.content import InMemoryContentStore
from aipack.packers.community import CommunityPacker
from aipack.bagit import Bag
from aipack.constants import OBJFILE, MDFILE, NORECURSE
from aipack.exceptions import MissingArchive, NotAuthorized, UnsupportedOperation, StateException

loghdlr = None
rootlog = None
def setUpModule():
    global loghdlr
    global rootlog
    ensure_tmpdir()
    rootlog = logging.getLogger()
    loghdlr = logging.FileHandler(os.path.join(tmpdir(),"test_community.log"))
    loghdlr.setLevel(logging.DEBUG)
    rootlog.addHandler(loghdlr)

def tearDownModule():
    global loghdlr
    if loghdlr:
        if rootlog:
            rootlog.removeHandler(loghdlr)
            loghdlr.flush()
            loghdlr.close()
        loghdlr = None
    rmtmpdir()

class TestCommunityPacker(test.TestCase):

    def setUp(self):
        self.tf = Tempfiles()
        self.workdir = self.tf.mkdir("work")
        self.data = {}
        self.store = InMemoryContentStore(self.data, foruser="alice")

        self.comm = self.store.create_community()
        self.comm.set_metadata("name", "Physics")
        self.comm.set_metadata("short_description", "All about physics")
        self.comm.set_metadata("introductory_text", "<p>Welcome</p>\r\nto physics")
        self.comm.set_logo(BytesIO(b"GIF89a"))
        self.comm.update()

        self.sub = self.store.create_community(self.comm)
        self.sub.set_metadata("name", "Optics")
        self.sub.update()

        self.packer = CommunityPacker(self.comm)

    def tearDown(self):
        self.tf.clean()

    def test_ctor(self):
        self.assertIs(self.packer.community, self.comm)
        self.assertIs(self.packer.node, self.comm)
        self.assertEqual(self.packer.archfmt, "zip")
        self.assertEqual(CommunityPacker(self.comm, "tgz").archfmt, "tgz")
        self.assertEqual(CommunityPacker(self.comm, config={"archive_format": "tar"}).archfmt, "tar")

        self.packer.community = self.sub
        self.assertIs(self.packer.community, self.sub)

    def test_pack(self):
        archive = self.packer.pack(os.path.join(self.workdir, "physics"))
        self.assertEqual(archive, os.path.join(self.workdir, "physics.zip"))
        self.assertTrue(os.path.isfile(archive))

        # the staging directory is gone
        self.assertEqual(os.listdir(self.workdir), ["physics.zip"])

        with Bag(archive, {"validate": True}) as bag:
            props = bag.flat_reader(OBJFILE)
            self.assertEqual(props.keys(), ["BAG_TYPE", "OBJECT_TYPE", "OBJECT_ID"])
            self.assertEqual(props.get_property("BAG_TYPE"), "AIP")
            self.assertEqual(props.get_property("OBJECT_TYPE"), "community")
            self.assertEqual(props.get_property("OBJECT_ID"), self.comm.handle)

            with bag.xml_reader(MDFILE) as reader:
                self.assertTrue(reader.find_stanza("metadata"))
                values = dict((v.name, v.val) for v in reader)
            self.assertEqual(values, {
                "name": "Physics",
                "short_description": "All about physics",
                "introductory_text": "<p>Welcome</p>\r\nto physics"
            })

            self.assertEqual(list(bag.payload_names()), ["logo"])
            with bag.data_stream("logo") as fd:
                self.assertEqual(fd.read(), b"GIF89a")

            with open(os.path.join(bag.bagdir, "bag-info.txt")) as fd:
                info = fd.read()
            self.assertIn("External-Identifier: %s\n" % self.comm.handle, info)
            self.assertIn("AIP-Schema-Version: 1\n", info)

    def test_pack_owner(self):
        archive = CommunityPacker(self.sub, "tgz").pack(os.path.join(self.workdir, "optics"))
        self.assertTrue(archive.endswith("optics.tgz"))
        with Bag(archive) as bag:
            props = bag.flat_reader(OBJFILE)
            self.assertEqual(props.get_property("OWNER_ID"), self.comm.handle)

            # no logo, no payload
            self.assertEqual(list(bag.payload_names()), [])
            self.assertIsNone(bag.data_stream("logo"))

    def test_pack_existing_dir(self):
        packdir = self.tf.mkdir(os.path.join("work", "physics"))
        with open(os.path.join(packdir, "junk"), 'w') as fd:
            fd.write("junk")
        with self.assertRaises(StateException):
            self.packer.pack(packdir)
        self.assertEqual(os.listdir(packdir), ["junk"])

    def test_unpack(self):
        archive = self.packer.pack(os.path.join(self.workdir, "physics"))

        target = self.store.create_community()
        target.set_metadata("side_bar_text", "keep me")
        target.update()
        CommunityPacker(target).unpack(archive)

        target = self.store.get(target.handle)
        self.assertEqual(target.get_metadata("name"), "Physics")
        self.assertEqual(target.get_metadata("short_description"), "All about physics")
        self.assertEqual(target.get_metadata("introductory_text"), "<p>Welcome</p>\r\nto physics")
        self.assertEqual(target.get_metadata("side_bar_text"), "keep me")
        with target.logo.retrieve() as fd:
            self.assertEqual(fd.read(), b"GIF89a")

        # the archive remains, the staging area does not
        self.assertEqual(os.listdir(self.workdir), ["physics.zip"])

    def test_unpack_control_chars(self):
        self.comm.set_metadata("copyright_text", "page1\x0cpage2")
        self.comm.update()
        archive = self.packer.pack(os.path.join(self.workdir, "physics"))

        target = self.store.create_community()
        target.update()
        CommunityPacker(target).unpack(archive)

        target = self.store.get(target.handle)
        self.assertEqual(target.get_metadata("copyright_text"), "page1\x0cpage2")
        self.assertEqual(target.get_metadata("name"), "Physics")

    def test_unpack_clears_logo(self):
        archive = CommunityPacker(self.sub).pack(os.path.join(self.workdir, "optics"))
        CommunityPacker(self.comm).unpack(archive)

        comm = self.store.get(self.comm.handle)
        self.assertIsNone(comm.logo)
        self.assertEqual(comm.get_metadata("name"), "Optics")
        self.assertEqual(comm.get_metadata("short_description"), "All about physics")
        self.assertEqual(self.data['payloads'], {})

    def test_unpack_missing_archive(self):
        with self.assertRaises(MissingArchive) as cm:
            self.packer.unpack(None)
        self.assertEqual(str(cm.exception), "Missing archive for community: " + self.comm.handle)
        self.assertEqual(cm.exception.handle, self.comm.handle)

        with self.assertRaises(MissingArchive):
            self.packer.unpack(os.path.join(self.workdir, "goob.zip"))

        comm = self.store.get(self.comm.handle)
        self.assertEqual(comm.get_metadata("name"), "Physics")
        self.assertIsNotNone(comm.logo)

    def test_unpack_not_authorized(self):
        archive = CommunityPacker(self.sub).pack(os.path.join(self.workdir, "optics"))
        bob = InMemoryContentStore(self.data, foruser="bob")

        with self.assertRaises(NotAuthorized):
            CommunityPacker(bob.get(self.comm.handle)).unpack(archive)

        self.assertEqual(self.store.get(self.comm.handle).get_metadata("name"), "Physics")
        self.assertEqual(os.listdir(self.workdir), ["optics.zip"])

    def test_size(self):
        self.assertEqual(self.packer.size(), 6)

        self.sub.set_logo(BytesIO(b"PNG"))
        self.sub.update()
        coll = self.store.create_collection(self.comm)
        coll.set_logo(BytesIO(b"JPEG"))
        coll.update()
        item = self.store.create_item(coll)
        item.add_bitstream("ORIGINAL", "paper.pdf", BytesIO(b"%PDF-1.7"))
        item.update()

        packer = CommunityPacker(self.store.get(self.comm.handle))
        self.assertEqual(packer.size(), 6 + 3 + 4 + 8)
        self.assertEqual(packer.size(NORECURSE), 6)
        self.assertEqual(CommunityPacker(self.store.get(self.sub.handle)).size(), 3)

    def test_filters(self):
        self.packer.set_content_filter("ORIGINAL")
        with self.assertRaises(UnsupportedOperation):
            self.packer.set_reference_filter("ORIGINAL")
        with self.assertRaises(NotImplementedError):
            self.packer.set_reference_filter(None)


if __name__ == '__main__':
    test.main()
