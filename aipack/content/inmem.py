"""
An implementation of the ContentStore interface based on a simple in-memory look-up.  

This is provided primarily for testing purposes.  Multiple store instances (e.g. operating on 
behalf of different users) can share the same content by being constructed with the same ``data``
dictionary.
"""
from io import BytesIO
from copy import deepcopy
from collections.abc import Mapping, MutableMapping

from . import base
from ..utils.io import copy_stream

class InMemoryContentStore(base.ContentStore):
    """
    an in-memory ContentStore implementation 
    """

    def __init__(self, data: MutableMapping=None, config: Mapping=None, foruser: str=base.ANONYMOUS,
                 log=None):
        """
        :param dict    data:  the dictionary to hold the store's content; if None, an empty one 
                              will be created
        :param dict  config:  the store configuration
        :param str  foruser:  the user to operate on behalf of
        """
        if data is None:
            data = {}
        self._db = data
        self._db.setdefault('records', {})
        self._db.setdefault('payloads', {})
        self._db.setdefault('nextnum', 0)
        super(InMemoryContentStore, self).__init__(config, foruser, log)

    def _get_rec(self, handle):
        return deepcopy(self._db['records'].get(handle))

    def _put_rec(self, rec):
        self._db['records'][rec['handle']] = deepcopy(rec)

    def _next_num(self):
        self._db['nextnum'] += 1
        return self._db['nextnum']

    def _save_payload(self, key, stream, hasher):
        buf = BytesIO()
        size = copy_stream(stream, buf, hasher=hasher, name=key)
        self._db['payloads'][key] = buf.getvalue()
        return size

    def _open_payload(self, key):
        if key not in self._db['payloads']:
            raise base.ObjectNotFound(key, "Payload bytes not found: " + key)
        return BytesIO(self._db['payloads'][key])

    def _delete_payload(self, key):
        self._db['payloads'].pop(key, None)
