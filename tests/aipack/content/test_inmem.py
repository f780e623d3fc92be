import os, sys, pdb, logging
from io import BytesIO
import unittest as test

from aipack.content import inmem, COMMUNITY, COLLECTION, ITEM
from aipack.content.base import Community, Collection, Item, ANONYMOUS
from aipack.exceptions import NotAuthorized, ObjectNotFound, StateException

class TestInMemoryContentStore(test.TestCase):

    def setUp(self):
        self.data = {}
        self.store = inmem.InMemoryContentStore(self.data, foruser="alice")

    def test_ctor(self):
        self.assertEqual(self.store.user_id, "alice")
        self.assertEqual(self.data['records'], {})
        self.assertEqual(inmem.InMemoryContentStore().user_id, ANONYMOUS)

    def test_create_community(self):
        comm = self.store.create_community()
        self.assertTrue(isinstance(comm, Community))
        self.assertEqual(comm.handle, "123456789/1")
        self.assertEqual(comm.type, COMMUNITY)
        self.assertIsNone(comm.parent)
        self.assertEqual(comm.children, [])
        self.assertIsNone(comm.logo)
        self.assertTrue(self.store.exists("123456789/1"))

        sub = self.store.create_community(comm)
        self.assertEqual(sub.handle, "123456789/2")
        self.assertEqual(sub.parent.handle, comm.handle)
        self.assertEqual([c.handle for c in comm.subcommunities], [sub.handle])
        self.assertEqual(comm.collections, [])

        # the parent's committed record knows about its child, too
        self.assertEqual([c.handle for c in self.store.get(comm.handle).children], [sub.handle])

    def test_create_with_handle(self):
        store = inmem.InMemoryContentStore(config={"handle_prefix": "10.5"})
        comm = store.create_community()
        self.assertEqual(comm.handle, "10.5/1")

        comm = store.create_community(handle="hdl/physics")
        self.assertEqual(comm.handle, "hdl/physics")
        with self.assertRaises(StateException):
            store.create_community(handle="hdl/physics")

    def test_create_tree(self):
        comm = self.store.create_community()
        coll = self.store.create_collection(comm)
        item = self.store.create_item(coll)
        self.assertTrue(isinstance(coll, Collection))
        self.assertTrue(isinstance(item, Item))
        self.assertEqual([c.handle for c in comm.collections], [coll.handle])
        self.assertEqual([i.handle for i in coll.items], [item.handle])
        self.assertEqual(item.parent.handle, coll.handle)
        self.assertEqual(self.store.create(COLLECTION, comm).type, COLLECTION)

        with self.assertRaises(ValueError):
            self.store.create_collection(None)
        with self.assertRaises(ValueError):
            self.store.create_collection(coll)
        with self.assertRaises(ValueError):
            self.store.create_item(comm)
        with self.assertRaises(ValueError):
            self.store.create_community(coll)
        with self.assertRaises(ValueError):
            self.store.create("goob", comm)

    def test_get(self):
        comm = self.store.create_community()
        self.assertEqual(self.store.get(comm.handle).handle, comm.handle)
        with self.assertRaises(ObjectNotFound):
            self.store.get("123456789/99")
        self.assertFalse(self.store.exists("123456789/99"))

    def test_metadata(self):
        comm = self.store.create_community()
        comm.set_metadata("name", "Physics")
        comm.set_metadata("short_description", "All about physics")
        self.assertEqual(comm.get_metadata("name"), "Physics")
        self.assertEqual(comm.metadata_fields(), ["name", "short_description"])

        # not committed yet
        self.assertIsNone(self.store.get(comm.handle).get_metadata("name"))
        comm.update()
        self.assertEqual(self.store.get(comm.handle).get_metadata("name"), "Physics")

        comm.set_metadata("short_description", None)
        comm.update()
        self.assertIsNone(self.store.get(comm.handle).get_metadata("short_description"))

        with self.assertRaises(ValueError):
            comm.set_metadata("dc.title", "Physics")

    def test_item_metadata(self):
        item = self.store.create_item(self.store.create_collection(self.store.create_community()))
        item.set_metadata("dc.title", "A Paper")
        item.set_metadata("dc.contributor.author", "Doe, J.")
        item.update()
        item = self.store.get(item.handle)
        self.assertEqual(item.get_metadata("dc.title"), "A Paper")
        self.assertEqual(item.metadata_fields(), ["dc.title", "dc.contributor.author"])
        with self.assertRaises(ValueError):
            item.set_metadata("", "x")

    def test_logo(self):
        comm = self.store.create_community()
        comm.set_logo(BytesIO(b"GIF89a"))
        self.assertEqual(comm.logo.size, 6)
        comm.update()

        logo = self.store.get(comm.handle).logo
        self.assertEqual(logo.size, 6)
        self.assertEqual(logo.name, "logo")
        self.assertEqual(len(logo.checksum), 64)
        with logo.retrieve() as fd:
            self.assertEqual(fd.read(), b"GIF89a")
        self.assertEqual(len(self.data['payloads']), 1)

        # replacing the logo drops the old bytes once committed
        comm.set_logo(BytesIO(b"PNG"))
        self.assertEqual(len(self.data['payloads']), 2)
        comm.update()
        self.assertEqual(len(self.data['payloads']), 1)
        with self.store.get(comm.handle).logo.retrieve() as fd:
            self.assertEqual(fd.read(), b"PNG")

        comm.set_logo(None)
        comm.update()
        self.assertIsNone(self.store.get(comm.handle).logo)
        self.assertEqual(self.data['payloads'], {})

    def test_bitstreams(self):
        item = self.store.create_item(self.store.create_collection(self.store.create_community()))
        item.add_bitstream("ORIGINAL", "paper.pdf", BytesIO(b"%PDF"))
        item.add_bitstream("ORIGINAL", "data.csv", BytesIO(b"a,b\n1,2\n"))
        item.add_bitstream("LICENSE", "license.txt", BytesIO(b"CC0"))
        item.update()

        item = self.store.get(item.handle)
        self.assertEqual(list(item.bundles.keys()), ["ORIGINAL", "LICENSE"])
        self.assertEqual([b.name for b in item.bundles["ORIGINAL"]], ["paper.pdf", "data.csv"])
        self.assertEqual([b.size for b in item.bitstreams()], [4, 8, 3])

        # replacing a bitstream of the same name
        bs = item.add_bitstream("ORIGINAL", "paper.pdf", BytesIO(b"%PDF-1.7"))
        self.assertEqual(bs.size, 8)
        self.assertEqual([b.name for b in item.bundles["ORIGINAL"]], ["data.csv", "paper.pdf"])

        item.remove_bundle("LICENSE")
        item.update()
        self.assertEqual(list(self.store.get(item.handle).bundles.keys()), ["ORIGINAL"])
        self.assertEqual(len(self.data['payloads']), 2)

        with self.assertRaises(ValueError):
            item.add_bitstream("", "goob", BytesIO(b""))

    def test_authorization(self):
        comm = self.store.create_community()
        self.assertTrue(self.store.authorized(comm))

        bob = inmem.InMemoryContentStore(self.data, foruser="bob")
        bcomm = bob.get(comm.handle)
        self.assertFalse(bob.authorized(bcomm))
        bcomm.set_metadata("name", "Hijacked")
        with self.assertRaises(NotAuthorized) as cm:
            bcomm.update()
        self.assertEqual(cm.exception.user_id, "bob")
        self.assertIsNone(self.store.get(comm.handle).get_metadata("name"))

        with self.assertRaises(NotAuthorized):
            bob.create_collection(bcomm)

        admin = inmem.InMemoryContentStore(self.data, {"superusers": ["admin"]}, "admin")
        acomm = admin.get(comm.handle)
        acomm.set_metadata("name", "Physics")
        acomm.update()
        self.assertEqual(self.store.get(comm.handle).get_metadata("name"), "Physics")

    def test_update_preserves_structure(self):
        comm = self.store.create_community()
        stale = self.store.get(comm.handle)
        sub = self.store.create_community(comm)

        # committing a copy obtained before the child was added does not lose the child
        stale.set_metadata("name", "Physics")
        stale.update()
        self.assertEqual([c.handle for c in self.store.get(comm.handle).children], [sub.handle])


if __name__ == '__main__':
    test.main()
