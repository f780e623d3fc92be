"""
test infrastructure for aipack unit tests.  Tests that need scratch space should call
:py:func:`ensure_tmpdir` in their ``setUpModule()`` and :py:func:`rmtmpdir` in their
``tearDownModule()``; individual tests can then use a :py:class:`Tempfiles` instance to create
and clean up files within it.

The location of the scratch directory can be controlled with the ``AIPACK_TMPDIR`` environment
variable; it defaults to a directory under the system temporary directory that is unique to the
running process.
"""
import os, shutil, tempfile

__all__ = [ 'tmpdir', 'ensure_tmpdir', 'rmtmpdir', 'Tempfiles' ]

def tmpdir(basedir=None, dirname=None):
    """
    return the path to the scratch directory that tests should write into
    """
    if not basedir:
        basedir = os.environ.get('AIPACK_TMPDIR', tempfile.gettempdir())
    if not dirname:
        dirname = "_test_aipack.%d" % os.getpid()
    return os.path.join(basedir, dirname)

def ensure_tmpdir(basedir=None, dirname=None):
    """
    create the scratch directory if it does not already exist and return its path
    """
    tdir = tmpdir(basedir, dirname)
    if not os.path.exists(tdir):
        os.makedirs(tdir)
    return tdir

def rmtmpdir(basedir=None, dirname=None):
    """
    remove the scratch directory and everything in it
    """
    tdir = tmpdir(basedir, dirname)
    if os.path.exists(tdir):
        shutil.rmtree(tdir)

class Tempfiles(object):
    """
    a manager of files and directories created during a test within a root directory (by default,
    the scratch directory).  Call :py:meth:`clean` to remove everything it tracks.
    """

    def __init__(self, tempdir=None):
        if not tempdir:
            tempdir = ensure_tmpdir()
        self._root = tempdir
        self._files = set()

    @property
    def root(self):
        return self._root

    def __call__(self, child):
        """
        return the path to a file (or directory) named child within the root directory and
        mark it for removal by :py:meth:`clean`.
        """
        return self.track(child)

    def track(self, child):
        self._files.add(child)
        return os.path.join(self._root, child)

    def mkdir(self, dirname):
        """
        create and track a directory within the root directory and return its path
        """
        path = self.track(dirname)
        if not os.path.exists(path):
            os.makedirs(path)
        return path

    def clean(self):
        for f in self._files:
            path = os.path.join(self._root, f)
            if os.path.isdir(path):
                shutil.rmtree(path)
            elif os.path.exists(path):
                os.remove(path)
        self._files.clear()
