"""
Utility functions and classes used across aipack
"""
from .io import *
from .datamgmt import formatBytes, rmtree
