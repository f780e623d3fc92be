"""
module supporting the ``aipack`` command-line interface.  The program itself is defined in
:py:mod:`aipack.cli.aipack`; each of its subcommands is defined in a module of its own.

EXIT STATUS

Commands follow these conventions for exit status codes:

  0 - normal successful completion
  1 - the content object requested could not be found
  2 - an error was found in the option or argument values
  3 - the AIP archive given is missing or could not be read
  4 - error occured while writing output data
  6 - a configuration error was detected
  9 - the user is not authorized to make the requested change
  10 - an unrecognized command was requested

The value 200 is returned if any unexpected, uncaught exception bubbles to the top of the
execution stack.
"""
import os

from ..utils.cli import CommandFailure
from ..content import FSBasedContentStore, ANONYMOUS
from ..exceptions import StateException

DEF_STORE_DIR = "store"

def define_store_opts(parser, current_dests=None):
    """
    define the options for locating the content store unless the parent command already has
    """
    if current_dests is None or 'storedir' not in current_dests:
        parser.add_argument("-s", "--store", type=str, dest='storedir', metavar='DIR',
                            help="the directory holding the content store; default: "+
                                 "WORKDIR/"+DEF_STORE_DIR)

def open_store(args, config, cmd, log=None):
    """
    open the file-system based content store selected by the arguments and configuration.  The
    store operates on behalf of the user given with --actor-id.
    """
    storecfg = config.get('store', {})
    storedir = getattr(args, 'storedir', None) or storecfg.get('dir', DEF_STORE_DIR)
    if not os.path.isabs(storedir):
        storedir = os.path.join(config.get('working_dir', os.getcwd()), storedir)
    if not os.path.isdir(storedir):
        raise CommandFailure(cmd, "Content store directory not found: "+storedir, 2)

    user = getattr(args, 'actor', None) or ANONYMOUS
    try:
        return FSBasedContentStore(storedir, storecfg, user, log)
    except StateException as ex:
        raise CommandFailure(cmd, str(ex), 6, ex)
