import os, sys, logging, argparse, pdb
import unittest as test

from aipack.testing import *
from aipack.utils import cli
from aipack.exceptions import StateException, ConfigurationException
from aipack import config as cfgmod

tmpd = None

def setUpModule():
    global tmpd
    ensure_tmpdir()
    tmpd = tmpdir()

def tearDownModule():
    rmtmpdir()

class TestModFunctions(test.TestCase):

    def test_define_prog_opts(self):
        p = cli.define_prog_opts("admin", "exert superpowers")
        self.assertEqual(p.prog, "admin")
        self.assertIn("superpowers", p.description)
        self.assertIn("help specifically on CMD", p.epilog)
        
        args = p.parse_args([])
        self.assertEqual(args.workdir, "")
        self.assertIsNone(args.conf)
        self.assertIsNone(args.logfile)
        self.assertIsNone(args.actor)
        self.assertFalse(args.quiet)
        self.assertFalse(args.verbose)
        self.assertFalse(args.debug)

        parser = argparse.ArgumentParser("fred", None, "go to work", "good work")
        p = cli.define_prog_opts("goob", parser=parser)
        self.assertTrue(p is parser)
        self.assertEqual(p.prog, "fred")
        self.assertIn("good work", p.epilog)
        args = p.parse_args("-A gurn".split())
        self.assertEqual(args.actor, "gurn")

    def test_CommandFailure(self):
        ex = cli.CommandFailure("goob", "hey, don't do that!", 3)
        self.assertEqual(ex.cmd, "goob")
        self.assertEqual(ex.stat, 3)
        self.assertIsNone(ex.cause)
        self.assertEqual(str(ex), "hey, don't do that!")

        ex = cli.CommandFailure("goob", None, cause=ValueError("bad input"))
        self.assertEqual(ex.stat, 1)
        self.assertEqual(str(ex), "bad input")


class TestCLISuite(test.TestCase):

    def resetLogfile(self):
        rootlog = logging.getLogger()
        if cfgmod._log_handler:
            rootlog.removeHandler(cfgmod._log_handler)
        if self.logfile and os.path.exists(self.logfile):
            os.remove(self.logfile)
        self.logfile = None

    def setUp(self):
        self.logfile = None
        self.resetLogfile()

    def tearDown(self):
        self.resetLogfile()

    def test_ctor(self):
        cmd = cli.CLISuite("aipack")
        self.assertEqual(cmd.suitename, "aipack")
        self.assertIsNotNone(cmd.parser)
        self.assertEqual(cmd.parser.prog, "aipack")
        self.assertIsNotNone(cmd._subparser_src)
        self.assertEqual(cmd._cmds, {})

    def test_configure_log_defs(self):
        p = cli.define_prog_opts("aipack")
        args = p.parse_args("-q".split())
        cfg = {}
        
        cmd = cli.CLISuite("aipack")
        log = cmd.configure_log(args, cfg)
        self.logfile = cfgmod.global_logfile
        self.assertIsNotNone(log)
        self.assertEqual(log.name, "cli.aipack")
        self.assertEqual(self.logfile, os.path.join(os.getcwd(), "aipack.log"))
        
    def test_configure_log_viaargs(self):
        p = cli.define_prog_opts("aipack")
        args = p.parse_args("-q -l goober.log".split())
        cfg = { "logdir": tmpdir() }
        
        cmd = cli.CLISuite("aipack")
        log = cmd.configure_log(args, cfg)
        self.logfile = cfgmod.global_logfile
        self.assertEqual(log.name, "cli.aipack")
        self.assertEqual(self.logfile, os.path.join(os.getcwd(), "goober.log"))
        
    def test_configure_log_viaconfig(self):
        p = cli.define_prog_opts("aipack")
        args = p.parse_args("-q".split())
        cfg = {
            "logfile": "gurn.log",
            "logdir": tmpdir()
        }
        
        cmd = cli.CLISuite("aipack")
        log = cmd.configure_log(args, cfg)
        self.logfile = cfgmod.global_logfile
        self.assertEqual(self.logfile, os.path.join(tmpdir(), "gurn.log"))
        self.assertTrue(os.path.isfile(self.logfile))

    class TestCmdMod(object):
        def __init__(self):
            self.default_name = "mock"
            self.help = "mighty helpful"
            self.last_exec = None
        def load_into(self, sp, dest_names, cmdname):
            sp.add_argument("uid", metavar="ID", type=str, help="the ID to use")
        def execute(self, args, config, log):
            self.last_exec = { 'args': args, 'config': config, 'log': log }

    class FailingCmdMod(TestCmdMod):
        def execute(self, args, config, log):
            raise cli.CommandFailure(None, "it broke", 4)

    def test_load(self):
        cmd = cli.CLISuite("aipack")
        tstmod = self.TestCmdMod()

        cmd.load_subcommand(tstmod)
        self.assertIn("mock", cmd._cmds)
        self.assertTrue(cmd._cmds["mock"] is tstmod)

        cmd.load_subcommand(tstmod, "gurn")
        self.assertIn("mock", cmd._cmds)
        self.assertIn("gurn", cmd._cmds)
        self.assertIn("uid", cmd._dests)

        with self.assertRaises(StateException):
            cmd.load_subcommand(object())

    def test_execute(self):
        cmd = cli.CLISuite("aipack")
        tstmod = self.TestCmdMod()
        cmd.load_subcommand(tstmod, "gurn")

        cmd.execute(("-q -w "+tmpdir()+" gurn cranston").split())
        self.logfile = cfgmod.global_logfile
        self.assertEqual(tstmod.last_exec['args'].cmd, "gurn")
        self.assertEqual(tstmod.last_exec['args'].uid, "cranston")
        self.assertTrue(tstmod.last_exec['args'].quiet)
        self.assertEqual(tstmod.last_exec['config'],
                         {'working_dir': tmpdir(), 'logdir': tmpdir(), 'logfile': "aipack.log"})
        self.assertIsNotNone(tstmod.last_exec['log'])

    def test_execute_fail(self):
        cmd = cli.CLISuite("aipack")
        cmd.load_subcommand(self.FailingCmdMod(), "gurn")

        with self.assertRaises(cli.CommandFailure) as cm:
            cmd.execute(("-q -w "+tmpdir()+" gurn cranston").split())
        self.logfile = cfgmod.global_logfile
        self.assertEqual(cm.exception.cmd, "gurn")
        self.assertEqual(cm.exception.stat, 4)

        with self.assertRaises(cli.CommandFailure) as cm:
            cmd.execute(("-q -w "+os.path.join(tmpdir(), "goob")+" gurn cranston").split())
        self.assertEqual(cm.exception.stat, 2)

    def test_load_config(self):
        cfgfile = os.path.join(tmpdir(), "cli-config.yml")
        with open(cfgfile, 'w') as fd:
            fd.write("archive_format: tgz\nstore:\n  handle_prefix: '10.5'\n")

        cmd = cli.CLISuite("aipack", cfgfile)
        args = cmd.parser.parse_args([])
        self.assertEqual(cmd.load_config(args),
                         {"archive_format": "tgz", "store": {"handle_prefix": "10.5"}})

        args = cmd.parser.parse_args(["-c", os.path.join(tmpdir(), "goob.yml")])
        with self.assertRaises(ConfigurationException):
            cmd.load_config(args)

        cmd = cli.CLISuite("aipack", os.path.join(tmpdir(), "goob.yml"))
        args = cmd.parser.parse_args([])
        self.assertEqual(cmd.load_config(args), {})

    def test_extract_config_for_cmd(self):
        cmd = cli.CLISuite("aipack")
        tstmod = self.TestCmdMod()
        
        config = {
            "foo": "bar",
            "fred": "felon",
            "cmd": {
                "pack" : {
                    "fred": "cranston",
                    "goober": "cleveland"
                },
                "mock": {
                    "goober": "pittsburgh"
                }
            }
        }

        cfg = cmd.extract_config_for_cmd(config, 'pack', tstmod)
        self.assertEqual(cfg.get('goober'), "cleveland")
        self.assertEqual(cfg.get('fred'), "cranston")
        self.assertNotIn('cmd', cfg)
        cfg = cmd.extract_config_for_cmd(config, 'unpack', tstmod)
        self.assertEqual(cfg.get('goober'), "pittsburgh")
        self.assertEqual(cfg.get('fred'), "felon")


if __name__ == '__main__':
    test.main()
