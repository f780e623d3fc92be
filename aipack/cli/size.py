"""
CLI command that reports how many payload bytes packing a content object would involve
"""
import logging

from . import open_store
from ..utils.cli import CommandFailure
from ..utils import formatBytes
from ..packers import factory
from ..constants import NORECURSE
from ..exceptions import ObjectNotFound, UnsupportedOperation

default_name = "size"
help = "report the packable size of a content object"
description = """
  Print the number of payload bytes that packing the content object with the given handle would
  involve, including (by default) all of its descendants.
"""

def load_into(subparser, current_dests=None, as_cmd=None):
    """
    load this command into a CLI by defining the command's arguments and options
    """
    p = subparser
    p.description = description
    p.add_argument("handle", metavar="HANDLE", type=str, help="the handle of the object to size")
    p.add_argument("-N", "--norecurse", action="store_const", dest="method", const=NORECURSE,
                   help="do not include the sizes of the object's descendants")
    p.add_argument("-H", "--human-readable", action="store_true", dest="human",
                   help="print the size with units (e.g. 1.2 MB)")
    return None

def execute(args, config=None, log=None):
    """
    execute this command: print the requested object's size
    """
    cmd = default_name
    if not log:
        log = logging.getLogger(cmd)
    if not config:
        config = {}

    store = open_store(args, config, cmd, log)
    try:
        node = store.get(args.handle)
        size = factory.instance(node, None, config, log).size(args.method)
    except ObjectNotFound as ex:
        raise CommandFailure(cmd, str(ex), 1, ex)
    except UnsupportedOperation as ex:
        raise CommandFailure(cmd, str(ex), 2, ex)

    print(formatBytes(size) if args.human else size)
    return size
