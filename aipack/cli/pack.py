"""
CLI command that packs a content object into an AIP
"""
import os, logging

from . import open_store
from ..utils.cli import CommandFailure
from ..packers import factory
from ..exceptions import ObjectNotFound, StateException, UnsupportedOperation
from ..bagit import BagException

default_name = "pack"
help = "write the AIP for a content object"
description = """
  Pack the content object with the given handle into an archival information package (AIP).  The
  AIP is staged in a directory named after the handle within the output directory, and the
  archive file is written alongside it; the path to the archive is printed on success.  Only the
  object itself is packed:  its children, if any, must be packed separately.
"""

def load_into(subparser, current_dests=None, as_cmd=None):
    """
    load this command into a CLI by defining the command's arguments and options
    :param argparser.ArgumentParser subparser:  the argument parser instance to define this command's 
                                                interface into it 
    :rtype: None
    """
    p = subparser
    p.description = description
    p.add_argument("handle", metavar="HANDLE", type=str, help="the handle of the object to pack")
    p.add_argument("-d", "--output-dir", metavar="DIR", type=str, dest="outdir",
                   help="write the AIP into DIR; default: the working directory")
    p.add_argument("-f", "--format", metavar="FMT", type=str, dest="format",
                   help="the archive format to write (zip, tgz, or tar); default: zip")
    p.add_argument("-C", "--content-filter", metavar="FILTER", type=str, dest="cfilter",
                   help="the bundles to include when packing an item, as a comma-separated list; "+
                        "prefix the list with '!' to name the bundles to exclude instead")
    p.add_argument("-R", "--reference-filter", metavar="FILTER", type=str, dest="rfilter",
                   help="the bundles of an item to pack by reference only")
    return None

def execute(args, config=None, log=None):
    """
    execute this command: pack the requested object
    """
    cmd = default_name
    if not log:
        log = logging.getLogger(cmd)
    if not config:
        config = {}

    store = open_store(args, config, cmd, log)
    try:
        node = store.get(args.handle)
    except ObjectNotFound as ex:
        raise CommandFailure(cmd, str(ex), 1, ex)

    outdir = args.outdir or config.get('working_dir', os.getcwd())
    if not os.path.isdir(outdir):
        raise CommandFailure(cmd, "Output directory not found: "+outdir, 2)
    packdir = os.path.join(outdir, node.handle.replace('/', '_'))

    try:
        packer = factory.instance(node, args.format, config, log)
        if args.cfilter:
            packer.set_content_filter(args.cfilter)
        if args.rfilter:
            packer.set_reference_filter(args.rfilter)
        archive = packer.pack(packdir)
    except (UnsupportedOperation, ValueError) as ex:
        raise CommandFailure(cmd, str(ex), 2, ex)
    except (StateException, BagException, OSError) as ex:
        raise CommandFailure(cmd, "Failed to write AIP: "+str(ex), 4, ex)

    print(archive)
    return archive
