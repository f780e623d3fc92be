"""
The interface to the content tree that packers read from and restore into.

A content tree is made up of :py:class:`Community` objects, which may contain sub-communities and
:py:class:`Collection` objects, which in turn contain :py:class:`Item` objects.  Every object has a
stable identifier (its *handle*), metadata attribute values, and (for communities and collections)
an optional logo :py:class:`Bitstream`; items carry their bitstreams organized into named bundles.

Objects are retrieved from and created via a :py:class:`ContentStore`.  An object retrieved from a
store is a working copy:  changes made to it (via ``set_metadata()``, ``set_logo()``, etc.) are not
persisted until its ``update()`` method is called, at which time the store checks that the user
the store is operating on behalf of is authorized to make the change.

This module provides the storage-independent implementation; subclasses of :py:class:`ContentStore`
(see :py:mod:`~aipack.content.inmem` and :py:mod:`~aipack.content.fsbased`) implement the
storage hooks.
"""
import hashlib, uuid, logging
from abc import ABCMeta, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping
from copy import deepcopy
from typing import Iterator, List

from .constants import COMMUNITY, COLLECTION, ITEM
from . import schema
from ..exceptions import NotAuthorized, ObjectNotFound, StateException
from .. import system as _sys

ANONYMOUS = "anonymous"
DEF_HANDLE_PREFIX = "123456789"

class Bitstream(object):
    """
    a description of a stored binary payload.  The bytes are accessed via :py:meth:`retrieve`.
    """

    def __init__(self, store, data: Mapping):
        self._store = store
        self._data = data

    @property
    def name(self) -> str:
        return self._data.get('name')

    @property
    def key(self) -> str:
        """
        the store's identifier for the bytes
        """
        return self._data['key']

    @property
    def size(self) -> int:
        return self._data.get('size', 0)

    @property
    def checksum(self) -> str:
        """
        the SHA-256 checksum of the bytes
        """
        return self._data.get('checksum')

    def retrieve(self):
        """
        open the bitstream's bytes for reading.  The caller is responsible for closing the stream.
        :return:  a readable binary stream
        """
        return self._store._open_payload(self.key)

    def __repr__(self):
        return "Bitstream(%s, %d bytes)" % (repr(self.name), self.size)

class ContentNode(object):
    """
    a working copy of an object in the content tree.
    """
    TYPE = None

    def __init__(self, store, rec: Mapping):
        self._store = store
        self._data = rec

    @property
    def handle(self) -> str:
        """
        the stable, globally unique identifier for this object
        """
        return self._data['handle']

    @property
    def type(self) -> str:
        """
        the name of this object's kind (e.g. "community")
        """
        return self._data['type']

    def get_metadata(self, field: str) -> str:
        """
        return the value of the given metadata attribute or None if it is not set
        """
        return self._data['metadata'].get(field)

    def set_metadata(self, field: str, value: str):
        """
        set the value of a metadata attribute.  A value of None removes the attribute.
        :raise ValueError:  if the given attribute is not recognized for this kind of object
        """
        if not schema.is_recognized(self.type, field):
            raise ValueError("%s: Unrecognized metadata attribute for %s: %s" %
                             (self.handle, self.type, field))
        if value is None:
            self._data['metadata'].pop(field, None)
        else:
            self._data['metadata'][field] = str(value)

    def metadata_fields(self) -> List[str]:
        """
        return the names of the metadata attributes currently set on this object
        """
        return list(self._data['metadata'].keys())

    @property
    def parent(self):
        """
        the object that contains this one, or None if this is a top-level object
        """
        if not self._data.get('parent'):
            return None
        return self._store.get(self._data['parent'])

    @property
    def children(self) -> List["ContentNode"]:
        """
        the objects contained directly within this one
        """
        return [self._store.get(h) for h in self._data.get('children', [])]

    def _children_of_type(self, objtype):
        return [c for c in self.children if c.type == objtype]

    def update(self):
        """
        commit the changes made to this object to the store
        :raise NotAuthorized:  if the store's user is not authorized to update this object
        """
        self._store._commit(self)

    def __repr__(self):
        return "%s(%s)" % (self.__class__.__name__, self.handle)

class _LogoMixin(object):

    @property
    def logo(self):
        """
        the logo :py:class:`Bitstream` or None if this object has no logo
        """
        if not self._data.get('logo'):
            return None
        return Bitstream(self._store, self._data['logo'])

    def set_logo(self, stream):
        """
        set or clear the logo.  The new logo is saved by the store immediately but is not
        attached to this object in the store until ``update()`` is called.
        :param stream:  a readable binary stream providing the logo bytes, or None to remove the logo
        """
        if stream is None:
            self._data['logo'] = None
        else:
            self._data['logo'] = self._store._add_payload("logo", stream)

class Community(_LogoMixin, ContentNode):
    """
    a community:  a container of sub-communities and collections
    """
    TYPE = COMMUNITY

    @property
    def subcommunities(self) -> List["Community"]:
        return self._children_of_type(COMMUNITY)

    @property
    def collections(self) -> List["Collection"]:
        return self._children_of_type(COLLECTION)

class Collection(_LogoMixin, ContentNode):
    """
    a collection:  a container of items
    """
    TYPE = COLLECTION

    @property
    def items(self) -> List["Item"]:
        return self._children_of_type(ITEM)

class Item(ContentNode):
    """
    an item:  a leaf in the content tree that carries bitstreams organized into named bundles.
    Item metadata is open-ended; attribute names are typically qualified (e.g. "dc.title").
    """
    TYPE = ITEM

    @property
    def bundles(self) -> Mapping:
        """
        an ordered dictionary mapping bundle names to lists of :py:class:`Bitstream` objects
        """
        return OrderedDict((b, [Bitstream(self._store, bs) for bs in bss])
                           for b, bss in self._data['bundles'].items())

    def bitstreams(self) -> Iterator[Bitstream]:
        """
        iterate through all bitstreams in all bundles
        """
        for bss in self.bundles.values():
            for bs in bss:
                yield bs

    def add_bitstream(self, bundle: str, name: str, stream) -> Bitstream:
        """
        add a bitstream to a bundle (created as needed), replacing any existing one with the
        same name.  As with metadata, the change is not committed until ``update()`` is called.
        """
        if not bundle or not name:
            raise ValueError("add_bitstream(): bundle and name must be non-empty")
        data = self._store._add_payload(name, stream)
        bss = self._data['bundles'].setdefault(bundle, [])
        bss[:] = [bs for bs in bss if bs['name'] != name]
        bss.append(data)
        return Bitstream(self._store, data)

    def remove_bundle(self, bundle: str):
        """
        remove a bundle and all of its bitstreams
        """
        self._data['bundles'].pop(bundle, None)

_node_classes = {
    COMMUNITY:  Community,
    COLLECTION: Collection,
    ITEM:       Item
}

class ContentStore(object, metaclass=ABCMeta):
    """
    an interface to the storage of a content tree.  A store operates on behalf of a particular
    user whose authorization is checked whenever objects are created or updated.

    This class supports the following configuration parameters:

    :prop handle_prefix str ("123456789"):  the prefix used when minting new handles
    :prop superusers list ([]):  identifiers of users that are authorized to update any object
    """

    def __init__(self, config: Mapping=None, foruser: str=ANONYMOUS, log: logging.Logger=None):
        if config is None:
            config = {}
        self.cfg = config
        self._user = foruser
        self._prefix = self.cfg.get('handle_prefix', DEF_HANDLE_PREFIX)
        self._superusers = set(self.cfg.get('superusers', []))
        if not log:
            log = _sys.getSysLogger().getChild("store")
        self.log = log

    @property
    def user_id(self) -> str:
        """
        the identifier of the user this store operates on behalf of
        """
        return self._user

    @abstractmethod
    def _get_rec(self, handle: str) -> Mapping:
        """
        return a copy of the record for the given handle or None if it does not exist
        """
        raise NotImplementedError()

    @abstractmethod
    def _put_rec(self, rec: Mapping):
        """
        save the given record, replacing any existing one with the same handle
        """
        raise NotImplementedError()

    @abstractmethod
    def _next_num(self) -> int:
        """
        return the next number to use in a minted handle
        """
        raise NotImplementedError()

    @abstractmethod
    def _save_payload(self, key: str, stream, hasher) -> int:
        """
        save the bytes from the given stream under the given key, updating hasher with them
        :return:  the number of bytes saved
        """
        raise NotImplementedError()

    @abstractmethod
    def _open_payload(self, key: str):
        """
        open the payload with the given key for reading
        """
        raise NotImplementedError()

    @abstractmethod
    def _delete_payload(self, key: str):
        """
        remove the payload with the given key
        """
        raise NotImplementedError()

    def _add_payload(self, name, stream) -> Mapping:
        key = uuid.uuid4().hex
        hasher = hashlib.sha256()
        size = self._save_payload(key, stream, hasher)
        return OrderedDict([("name", name), ("key", key), ("size", size),
                            ("checksum", hasher.hexdigest())])

    def exists(self, handle: str) -> bool:
        """
        return True if an object with the given handle exists in this store
        """
        return self._get_rec(handle) is not None

    def get(self, handle: str) -> ContentNode:
        """
        return a working copy of the object with the given handle
        :raise ObjectNotFound:  if no such object exists
        """
        rec = self._get_rec(handle)
        if rec is None:
            raise ObjectNotFound(handle)
        return _node_classes[rec['type']](self, rec)

    def authorized(self, node: ContentNode, op: str="write") -> bool:
        """
        return True if this store's user is authorized to carry out the given operation on the
        given object.
        """
        if self._user in self._superusers:
            return True
        rec = self._get_rec(node.handle)
        if rec is None:
            rec = node._data
        return self._user in rec.get('acls', {}).get(op, [])

    def _mint_handle(self):
        return "%s/%d" % (self._prefix, self._next_num())

    def _create(self, objtype, parent=None, handle=None):
        if parent is not None and not self.authorized(parent, "write"):
            raise NotAuthorized(self._user, "add to " + parent.handle)
        if not handle:
            handle = self._mint_handle()
        if self.exists(handle):
            raise StateException("Object already exists: " + handle)

        rec = OrderedDict([
            ("handle", handle),
            ("type", objtype),
            ("parent", parent.handle if parent is not None else None),
            ("metadata", OrderedDict()),
            ("children", []),
            ("acls", {"write": [self._user]})
        ])
        if objtype == ITEM:
            rec['bundles'] = OrderedDict()
        else:
            rec['logo'] = None
        self._put_rec(rec)

        if parent is not None:
            prec = self._get_rec(parent.handle)
            prec['children'].append(handle)
            self._put_rec(prec)
            parent._data['children'] = list(prec['children'])

        self.log.debug("Created %s %s", objtype, handle)
        return self.get(handle)

    def create_community(self, parent: Community=None, handle: str=None) -> Community:
        """
        create a new community.
        :param Community parent:  the community to create the new one within; if None, a
                                  top-level community is created.
        :param str       handle:  the handle to assign; if None, one will be minted
        """
        if parent is not None and parent.type != COMMUNITY:
            raise ValueError("create_community(): parent is not a community: " + parent.handle)
        return self._create(COMMUNITY, parent, handle)

    def create_collection(self, community: Community, handle: str=None) -> Collection:
        """
        create a new collection within the given community
        """
        if community is None or community.type != COMMUNITY:
            raise ValueError("create_collection(): a parent community is required")
        return self._create(COLLECTION, community, handle)

    def create_item(self, collection: Collection, handle: str=None) -> Item:
        """
        create a new item within the given collection
        """
        if collection is None or collection.type != COLLECTION:
            raise ValueError("create_item(): a parent collection is required")
        return self._create(ITEM, collection, handle)

    def create(self, objtype: str, parent: ContentNode=None, handle: str=None) -> ContentNode:
        """
        create a new object of the given type
        """
        if objtype == COMMUNITY:
            return self.create_community(parent, handle)
        if objtype == COLLECTION:
            return self.create_collection(parent, handle)
        if objtype == ITEM:
            return self.create_item(parent, handle)
        raise ValueError("Unrecognized object type: " + str(objtype))

    def _payload_keys(self, rec):
        if rec.get('logo'):
            yield rec['logo']['key']
        for bss in rec.get('bundles', {}).values():
            for bs in bss:
                yield bs['key']

    def _commit(self, node: ContentNode):
        if not self.authorized(node, "write"):
            raise NotAuthorized(self._user, "update " + node.handle)
        old = self._get_rec(node.handle)
        if old is None:
            raise ObjectNotFound(node.handle)

        # structure is managed by the store, not the working copy
        rec = deepcopy(node._data)
        rec['children'] = old.get('children', [])
        rec['parent'] = old.get('parent')
        rec['acls'] = old.get('acls', {})
        self._put_rec(rec)

        for key in set(self._payload_keys(old)) - set(self._payload_keys(rec)):
            self._delete_payload(key)
        self.log.debug("Updated %s %s", rec['type'], rec['handle'])
