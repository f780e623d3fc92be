"""
Utilities for obtaining a configuration for aipack components and the command-line tool.

A configuration is a (possibly nested) dictionary of parameters.  Components accept such a 
dictionary at construction time and look up the parameters they understand with defaults.  
Configurations are typically stored in YAML (or JSON) files and loaded with :py:func:`load_from_file`.
"""
import os, sys, logging, json
from collections.abc import Mapping
from copy import deepcopy

import yaml

from .exceptions import ConfigurationException

__all__ = [ 'load_from_file', 'merge_config', 'configure_log', 'NORMAL', 'ConfigurationException' ]

NORMAL = 15
logging.addLevelName(NORMAL, "NORMAL")

DEF_LOGFILE = "aipack.log"
DEF_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

global_logdir = None
global_logfile = None
_log_handler = None

def load_from_file(configfile):
    """
    read the configuration from the given file and return it as a dictionary.  The file
    format is determined by its filename extension: ".json" is read as JSON; ".yml" or ".yaml"
    (or anything else) is read as YAML.
    """
    if not os.path.isfile(configfile):
        raise ConfigurationException("Configuration file not found: " + configfile)

    try:
        with open(configfile) as fd:
            if configfile.endswith('.json'):
                out = json.load(fd)
            else:
                out = yaml.safe_load(fd)
    except (ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException("%s: Config parsing error: %s" % (configfile, str(ex)), cause=ex)

    if out is None:
        out = {}
    if not isinstance(out, Mapping):
        raise ConfigurationException("%s: Config data is not an object" % configfile)
    return out

def merge_config(primary, defconf):
    """
    do a deep merge of a primary configuration on top of a default configuration.  Values in 
    primary override those in defconf; dictionary values are merged recursively.  Neither input
    is changed; a new dictionary is returned.

    :param dict primary:  the dictionary with the overriding values
    :param dict defconf:  the dictionary with the default values
    """
    out = deepcopy(defconf)
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = merge_config(val, out[key])
        else:
            out[key] = deepcopy(val)
    return out

def configure_log(logfile=None, level=None, format=None, config=None, addstderr=False):
    """
    configure the root log to send messages to a file.  

    :param str logfile:  the path of the file to write messages to; if relative, it will be 
                         interpreted relative to the ``logdir`` config parameter (or the current
                         directory).  If None, the ``logfile`` config parameter is used.
    :param int level:    the logging threshold; if None, the ``loglevel`` parameter will be used
    :param str format:   the message format; if None, the ``logformat`` parameter will be used
    :param dict config:  a configuration dictionary that may supply the above parameters
    :param bool addstderr:  if True, also send messages to standard error
    """
    global global_logdir, global_logfile, _log_handler
    if not config:
        config = {}
    if not logfile:
        logfile = config.get('logfile', DEF_LOGFILE)
    if not os.path.isabs(logfile):
        logdir = config.get('logdir', os.getcwd())
        if not os.path.isdir(logdir):
            raise ConfigurationException("logdir does not exist as a directory: " + logdir)
        logfile = os.path.join(logdir, logfile)
    global_logdir = os.path.dirname(logfile)
    global_logfile = logfile

    if level is None:
        level = config.get('loglevel', NORMAL)
    if isinstance(level, str):
        lvl = logging.getLevelName(level.upper())
        if not isinstance(lvl, int):
            raise ConfigurationException("Unrecognized loglevel value: " + level)
        level = lvl
    if not format:
        format = config.get('logformat', DEF_FORMAT)

    rootlog = logging.getLogger()
    if _log_handler:
        rootlog.removeHandler(_log_handler)
        _log_handler.close()
    _log_handler = logging.FileHandler(logfile)
    _log_handler.setLevel(level)
    _log_handler.setFormatter(logging.Formatter(format))
    rootlog.addHandler(_log_handler)
    if addstderr:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(format))
        rootlog.addHandler(handler)
    rootlog.setLevel(min(level, logging.DEBUG))
    rootlog.log(NORMAL, "FYI: Writing log messages to %s", logfile)
