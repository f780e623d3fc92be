"""
Utility functions and classes for file reading and writing
"""
from collections import OrderedDict
import json, os, threading
try:
    import fcntl
except ImportError:
    fcntl = None

from ..exceptions import StateException, PayloadLengthMismatch
from .logging import blab, utilslog
log = utilslog

__all__ = [
    'LockedFile', 'read_json', 'write_json', 'copy_stream', 'DEF_BUFSIZE'
]

DEF_BUFSIZE = 65536

class LockedFile(object):
    """
    An object representing a file in a locked state.  The file is locked against
    simultaneous accesses across both threads and processes.  

    The easiest way to use this class is via the with statement.  For example,
    to read a file with a shared lock (many reads, no writes):
    .. code-block:: python

       with LockedFile(filename) as fd:
           data = json.load(fd)

    And to write a file with an exclusive write (no other simultaneous reads 
    or writes):
    .. code-block:: python

       with LockedFile(filename, 'w') as fd:
           json.dump(data, fd)
    """
    _thread_locks = {}
    _class_lock = threading.RLock()

    class _ThreadLock(object):
        _reader_count = 0
        def __init__(self):
            self.ex_lock = threading.Lock()
            self.sh_lock = threading.Lock()
        def acquire_shared(self):
            with self.ex_lock:
                if not self._reader_count:
                    self.sh_lock.acquire()
                self._reader_count += 1
        def release_shared(self):
            with self.ex_lock:
                if self._reader_count > 0:
                    self._reader_count -= 1
                if self._reader_count <= 0:
                    self.sh_lock.release()
        def acquire_exclusive(self):
            with self.sh_lock:
                self.ex_lock.acquire()
        def release_exclusive(self):
            self.ex_lock.release()
            
    @classmethod
    def _get_thread_lock_for(cls, filepath):
        filepath = os.path.abspath(filepath)
        with cls._class_lock:
            if filepath not in cls._thread_locks:
                cls._thread_locks[filepath] = cls._ThreadLock()
            return cls._thread_locks[filepath]

    def __init__(self, filename, mode='r'):
        self.mode = mode
        self._fo = None
        self._fname = filename
        self._thread_lock = self._get_thread_lock_for(filename)
        self._writing = None

    @property
    def fo(self):
        """
        the open file object or None if the file is not currently open
        """
        return self._fo

    def _acquire_thread_lock(self):
        if self._writing:
            self._thread_lock.acquire_exclusive()
        else:
            self._thread_lock.acquire_shared()
    def _release_thread_lock(self):
        if self._writing:
            self._thread_lock.release_exclusive()
        else:
            self._thread_lock.release_shared()

    def open(self, mode=None):
        """
        Open the file so that it is appropriate locked.  If mode is not 
        provided, the mode will be the value set when this object was 
        created.  
        """
        if self._fo:
            raise StateException(str(self._fname)+": file is already open")
        if mode:
            self.mode = mode
            
        self._writing = 'a' in self.mode or 'w' in self.mode or '+' in self.mode
        self._acquire_thread_lock()
        try:
            self._fo = open(self._fname, self.mode)
        except Exception:
            self._release_thread_lock()
            self._fo = None
            self._writing = None
            raise

        if fcntl:
            lock_type = (self._writing and fcntl.LOCK_EX) or fcntl.LOCK_SH
            fcntl.lockf(self.fo, lock_type)
        return self.fo

    def close(self):
        if not self._fo:
            return
        try:
            self._fo.close()
        finally:
            self._fo = None
            self._release_thread_lock()
            self._writing = None

    def __enter__(self):
        return self.open()

    def __exit__(self, e1, e2, e3):
        self.close()
        return False

    def __del__(self):
        if self._fo:
            self.close()

def read_json(jsonfile):
    """
    read the JSON data from the specified file while holding a shared lock

    :param str   jsonfile:  the path to the JSON file to read.  
    :raise IOError:  if there is an error while acquiring the lock or reading 
                     the file contents
    :raise ValueError:  if JSON format errors are detected.
    """
    with LockedFile(jsonfile) as fd:
        blab(log, "Acquired shared lock for reading: "+str(jsonfile))
        out = json.load(fd, object_pairs_hook=OrderedDict)
    blab(log, "released SH")
    return out

def write_json(jsdata, destfile, indent=4):
    """
    write out the given JSON data into a file with pretty print formatting while holding 
    an exclusive lock

    :param dict jsdata:    the JSON data to write 
    :param str  destfile:  the path to the file to write the data to
    :param int  indent:    the number of characters to use for indentation
                           (default: 4).
    """
    try:
        with LockedFile(destfile, 'a') as fd:
            blab(log, "Acquired exclusive lock for writing: "+str(destfile))
            fd.truncate(0)
            json.dump(jsdata, fd, indent=indent, separators=(',', ': '))
        blab(log, "released EX")
    except Exception as ex:
        raise StateException("{0}: Failed to write JSON data to file: {1}"
                             .format(destfile, str(ex)), cause=ex)

def copy_stream(src, dest, length=None, bufsize=DEF_BUFSIZE, hasher=None, name=None):
    """
    copy bytes from one binary stream to another without buffering the whole content in memory.

    :param src:         a readable binary stream
    :param dest:        a writable binary stream
    :param int length:  the exact number of bytes to copy; if None, copy until src is exhausted
    :param int bufsize: the maximum number of bytes to read at a time
    :param hasher:      a hashlib hash object to update with the copied bytes (optional)
    :param str name:    a name for the content being copied, used in error messages
    :return:  the number of bytes copied
    :rtype: int
    :raise PayloadLengthMismatch:  if length is given and src provides fewer or more bytes
    """
    count = 0
    while length is None or count < length:
        want = bufsize if length is None else min(bufsize, length - count)
        buf = src.read(want)
        if not buf:
            break
        dest.write(buf)
        if hasher:
            hasher.update(buf)
        count += len(buf)

    if length is not None and count != length:
        raise PayloadLengthMismatch(name or "stream", length, count)
    if length is not None and src.read(1):
        raise PayloadLengthMismatch(name or "stream", length, count+1,
                                    "%s: payload length mismatch: stream has more than the expected "
                                    "%d bytes" % (name or "stream", length))
    return count
