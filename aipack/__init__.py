"""
aipack: tools for packing hierarchical repository content into archival information packages (AIPs)
and for restoring content from them.

An AIP is a self-describing, checksum-verifiable archive (a serialized BagIt bag) describing a single 
node of a content tree--e.g. a community, collection, or item--including its identity, its metadata,
and any binary payloads it carries.  The main pieces are:

  * :py:mod:`aipack.bagit` -- the :py:class:`~aipack.bagit.bag.Bag` staging abstraction and its 
    serialization to and from archive files,
  * :py:mod:`aipack.packers` -- the :py:class:`~aipack.packers.base.Packer` contract, one implementation 
    per node type, and the :py:mod:`~aipack.packers.factory` that selects among them,
  * :py:mod:`aipack.content` -- the content-tree store interface that packers read from and write to.
"""
import logging

from .exceptions import *

try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

_AIPSYSNAME = "AIP Packager"
_AIPSYSABBREV = "aipack"

class AIPackSystem(object):
    """
    a description of the software system (or subsystem) that is doing the work.  This is used to 
    name loggers and to identify the agent that created a bag.
    """
    def __init__(self, subsysname="", subsysabbrev=""):
        self.system_name = _AIPSYSNAME
        self.system_abbrev = _AIPSYSABBREV
        self.subsystem_name = subsysname
        self.subsystem_abbrev = subsysabbrev
        self.system_version = __version__

    @property
    def agent(self):
        """
        a string identifying this software, suitable for a Bag-Software-Agent value
        """
        return "%s %s" % (self.system_abbrev, self.system_version)

    def getSysLogger(self):
        """
        return the logger that should be used by the system (or subsystem)
        """
        out = logging.getLogger(self.system_abbrev)
        if self.subsystem_abbrev:
            out = out.getChild(self.subsystem_abbrev)
        return out

system = AIPackSystem()
