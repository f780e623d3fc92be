"""
aipack command-line program for packing content into AIPs and restoring content from them
"""
import os, sys, logging

from ..utils import cli
from . import define_store_opts, pack, unpack, size

description = "pack repository content objects into archival information packages (AIPs) and restore them"
epilog = None
default_prog_name = "aipack"
default_conf_file = os.path.join(os.path.expanduser("~"), ".aipack", "config.yml")

def define_opts(progname=None):
    """
    return the argument parser for the aipack program with all of its subcommands loaded
    """
    if not progname:
        progname = default_prog_name
    argparser = cli.define_prog_opts(progname, description, epilog)
    define_store_opts(argparser)

    suite = cli.CLISuite(progname, os.environ.get('AIPACK_CONFIG', default_conf_file), argparser)
    suite.load_subcommand(pack)
    suite.load_subcommand(unpack)
    suite.load_subcommand(size)
    return suite

def main(cmdname, args):
    """
    a function that executes the ``aipack`` command-line tool.  
    """
    suite = define_opts(cmdname)
    suite.execute(args)
    return args

def cli_main():
    """
    the entry point for the installed ``aipack`` script
    """
    prog = os.path.splitext(os.path.basename(sys.argv[0]))[0] or default_prog_name
    try:
        main(prog, sys.argv[1:])
        sys.exit(0)
    except cli.CommandFailure as ex:
        name = prog if not ex.cmd else "%s %s" % (prog, ex.cmd)
        logging.getLogger(name).critical(str(ex))
        if not logging.getLogger().handlers:
            print("%s: %s" % (name, str(ex)), file=sys.stderr)
        sys.exit(ex.stat)
    except Exception as ex:
        logging.getLogger(prog).exception(ex)
        sys.exit(200)

if __name__ == "__main__":
    cli_main()
