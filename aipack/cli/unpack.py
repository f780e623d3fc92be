"""
CLI command that restores a content object from an AIP
"""
import os, logging

from . import open_store
from ..utils.cli import CommandFailure
from ..packers import factory
from ..bagit import Bag, BagException
from ..constants import OBJFILE, OBJECT_TYPE, OBJECT_ID, OWNER_ID
from ..exceptions import (ObjectNotFound, NotAuthorized, MissingArchive, StateException,
                          UnsupportedOperation)

default_name = "unpack"
help = "restore a content object from its AIP"
description = """
  Restore a content object from an AIP archive file.  If a handle is given, the archive's contents
  are restored into that (existing) object.  Otherwise, the object identified within the AIP is
  restored; if it does not exist yet, it is created within the AIP's owner.
"""

def load_into(subparser, current_dests=None, as_cmd=None):
    """
    load this command into a CLI by defining the command's arguments and options
    """
    p = subparser
    p.description = description
    p.add_argument("archive", metavar="ARCHIVE", type=str, help="the AIP archive file to restore from")
    p.add_argument("handle", metavar="HANDLE", type=str, nargs="?",
                   help="the handle of the object to restore into")
    p.add_argument("-C", "--content-filter", metavar="FILTER", type=str, dest="cfilter",
                   help="the bundles to restore when unpacking an item")
    return None

def read_identity(archive, config=None, log=None):
    """
    return the object type, identifier, and owner identifier recorded in an AIP
    """
    if not config:
        config = {}
    with Bag(archive, config.get('bag', {}), log) as bag:
        props = bag.flat_reader(OBJFILE)
        if props is None:
            raise StateException("%s: not an AIP (missing %s)" % (os.path.basename(archive), OBJFILE))
        return (props.get_property(OBJECT_TYPE), props.get_property(OBJECT_ID),
                props.get_property(OWNER_ID))

def _find_target(store, args, config, cmd, log):
    if args.handle:
        return store.get(args.handle)

    objtype, handle, owner = read_identity(args.archive, config, log)
    if not objtype or not handle:
        raise CommandFailure(cmd, "%s: AIP does not identify its object" % args.archive, 3)
    if store.exists(handle):
        return store.get(handle)

    parent = store.get(owner) if owner else None
    log.info("Creating %s %s", objtype, handle)
    return store.create(objtype, parent, handle)

def execute(args, config=None, log=None):
    """
    execute this command: restore the object from the given archive
    """
    cmd = default_name
    if not log:
        log = logging.getLogger(cmd)
    if not config:
        config = {}

    store = open_store(args, config, cmd, log)
    if not os.path.isfile(args.archive):
        raise CommandFailure(cmd, "AIP archive not found: "+args.archive, 3)

    try:
        node = _find_target(store, args, config, cmd, log)
        packer = factory.instance(node, None, config, log)
        if args.cfilter:
            packer.set_content_filter(args.cfilter)
        packer.unpack(args.archive)
    except ObjectNotFound as ex:
        raise CommandFailure(cmd, str(ex), 1, ex)
    except NotAuthorized as ex:
        raise CommandFailure(cmd, str(ex), 9, ex)
    except (UnsupportedOperation, ValueError) as ex:
        raise CommandFailure(cmd, str(ex), 2, ex)
    except (MissingArchive, BagException) as ex:
        raise CommandFailure(cmd, "Unable to read AIP: "+str(ex), 3, ex)
    except StateException as ex:
        raise CommandFailure(cmd, str(ex), 1, ex)

    log.info("Restored %s %s", node.type, node.handle)
    return node
