"""
An implementation of the ContentStore interface that persists the content tree to files on disk.

Under the store's root directory, each object's record is saved as a JSON file in the ``records``
subdirectory, and payload bytes are saved as files in the ``payloads`` subdirectory.
"""
import os
from pathlib import Path
from collections.abc import Mapping

import filelock

from . import base
from ..exceptions import StateException
from ..utils.io import read_json, write_json, copy_stream

class FSBasedContentStore(base.ContentStore):
    """
    an implementation of ContentStore in which the content is persisted to flat files on disk.
    """

    def __init__(self, rootdir: str, config: Mapping=None, foruser: str=base.ANONYMOUS, log=None):
        self._root = Path(rootdir)
        if not self._root.is_dir():
            raise StateException("FSBasedContentStore: %s: does not exist as a directory" % rootdir)
        self._recdir = self._root / "records"
        self._paydir = self._root / "payloads"
        for d in (self._recdir, self._paydir):
            if not d.exists():
                os.mkdir(d)
        super(FSBasedContentStore, self).__init__(config, foruser, log)

    def _rec_path(self, handle):
        return self._recdir / (handle.replace('/', '_') + ".json")

    def _get_rec(self, handle):
        recpath = self._rec_path(handle)
        if not recpath.is_file():
            return None
        try:
            return read_json(str(recpath))
        except ValueError as ex:
            raise StateException("%s: Unable to read content record as JSON: %s" % (handle, str(ex)),
                                 cause=ex)

    def _put_rec(self, rec):
        write_json(rec, str(self._rec_path(rec['handle'])))

    def _next_num(self):
        numfile = self._root / "nextnum.json"
        with filelock.FileLock(str(numfile) + ".lock"):
            num = 0
            if numfile.exists():
                num = read_json(str(numfile))
            num += 1
            write_json(num, str(numfile))
        return num

    def _save_payload(self, key, stream, hasher):
        path = self._paydir / key
        try:
            with open(path, 'wb') as fd:
                return copy_stream(stream, fd, hasher=hasher, name=key)
        except Exception:
            if path.exists():
                path.unlink()
            raise

    def _open_payload(self, key):
        path = self._paydir / key
        if not path.is_file():
            raise base.ObjectNotFound(key, "Payload bytes not found: " + key)
        return open(path, 'rb')

    def _delete_payload(self, key):
        path = self._paydir / key
        if path.exists():
            path.unlink()
