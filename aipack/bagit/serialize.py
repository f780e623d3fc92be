"""
Tools for serializing bags into single archive files and for unpacking them again.

A serialized bag contains a single top-level directory, named after the bag, holding the bag's
contents.
"""
import logging, os, re, tarfile, zipfile

from .exceptions import BagSerializationError
from ..exceptions import StateException
from ..utils.datamgmt import rmtree
from .. import system as _sys

_bagitre = re.compile(r"^([^/]+)/bagit.txt$")

def _defaultlog():
    return _sys.getSysLogger().getChild("serialize")

def _safe_member(name, destdir):
    target = os.path.realpath(os.path.join(destdir, name))
    return target == destdir or target.startswith(destdir + os.sep)

def _remove_partial(path, log):
    if os.path.exists(path):
        try:
            rmtree(path)
        except OSError as ex:
            log.warning("Unable to clean up partial output, %s: %s", path, str(ex))

def _determine_bagname(names, bagfile):
    bags = [m.group(1) for m in (_bagitre.match(n) for n in names) if m]
    if len(bags) == 0:
        raise BagSerializationError("%s: not a bag file (missing bagit.txt file)" % bagfile, bagfile)
    if len(set(bags)) > 1:
        raise BagSerializationError("%s: not a bag file (too many bagit.txt files)" % bagfile, bagfile)
    return bags[0]

def _check_serialize_args(bagdir, destdir):
    if not os.path.isdir(bagdir):
        raise StateException("Can't serialize missing bag directory: "+bagdir)
    if not os.path.isdir(destdir):
        raise StateException("Can't serialize to missing destination directory: "+destdir)

def _check_deserialize_args(bagfile, destdir):
    if not os.path.isfile(bagfile):
        raise StateException("Can't unpack a missing bag file: "+bagfile)
    if not os.path.isdir(destdir):
        raise StateException("Can't unpack a serialized bag into missing destination diretory: "
                             +destdir)

def zip_serialize(bagdir, destdir, log, destfile=None):
    """
    serialize a bag with zip

    :param bagdir   str:  path to the bag root directory to be serialized
    :param destdir  str:  path to the output directory to write serialized 
                             file to.  
    :param log   Logger:  a logger to write messages to
    :param destfile str:  the name to give to the serialized file.  If not 
                             provided, one will be constructed from the 
                             bag directory name (and an appropriate extension)
    """
    bagdir = os.path.abspath(bagdir)
    parent, name = os.path.split(bagdir)
    if not destfile:
        destfile = name+'.zip'
    destfile = os.path.join(destdir, destfile)
    _check_serialize_args(bagdir, destdir)

    log.info("serializing bag with zip: %s", name)
    try:
        with zipfile.ZipFile(destfile, 'w', zipfile.ZIP_DEFLATED) as zf:
            for root, subdirs, files in os.walk(bagdir):
                subdirs.sort()
                zf.write(root, os.path.relpath(root, parent))
                for f in sorted(files):
                    path = os.path.join(root, f)
                    zf.write(path, os.path.relpath(path, parent))
    except (OSError, zipfile.BadZipFile) as ex:
        log.exception("zip serialization failed: "+str(ex))
        _remove_partial(destfile, log)
        raise BagSerializationError("Bag serialization failure using zip: "+str(ex), name, ex)

    return destfile

def zip_deserialize(bagfile, destdir, log):
    """
    unpack a zip-serialized bag into a specified directory
    :param str bagfile:  the name of the serialized bag file
    :param str destdir:  the output directory to write the the unpacked bag into
    :param log:   the Logger object to send comments to 
    """
    _check_deserialize_args(bagfile, destdir)
    destdir = os.path.realpath(destdir)
    outbag = os.path.join(destdir, zip_determine_bagname(bagfile))
    if os.path.exists(outbag):
        raise StateException("Destination bag already exists: "+outbag)

    log.info("unpacking zip-serialized bag: %s", os.path.basename(bagfile))
    try:
        with zipfile.ZipFile(bagfile) as zf:
            for member in zf.namelist():
                if not _safe_member(member, destdir):
                    raise BagSerializationError("%s: illegal member path: %s" % (bagfile, member),
                                                os.path.basename(bagfile))
            zf.extractall(destdir)
    except (OSError, zipfile.BadZipFile) as ex:
        _remove_partial(outbag, log)
        raise BagSerializationError("Bag deserialization failure using zip: "+str(ex),
                                    os.path.basename(bagfile), ex)

    return outbag

def zip_determine_bagname(bagfile):
    """
    peek into the zip-serialized bag and determine its name.  It will look for the bagit.txt file
    and determine the name of its parent directory.  A BagSerializationError is raised if the file 
    does not appear to be a readable zipfile containing a legal bag.  
    """
    try:
        with zipfile.ZipFile(bagfile) as zf:
            return _determine_bagname(zf.namelist(), bagfile)
    except zipfile.BadZipFile as ex:
        raise BagSerializationError("%s: not a legal zip file" % bagfile, bagfile, ex)

def _tar_serialize(bagdir, destdir, log, destfile, ext, mode):
    bagdir = os.path.abspath(bagdir)
    parent, name = os.path.split(bagdir)
    if not destfile:
        destfile = name+ext
    destfile = os.path.join(destdir, destfile)
    _check_serialize_args(bagdir, destdir)

    log.info("serializing bag with tar (%s): %s", mode, name)
    try:
        with tarfile.open(destfile, mode) as tf:
            tf.add(bagdir, name)
    except (OSError, tarfile.TarError) as ex:
        log.exception("tar serialization failed: "+str(ex))
        _remove_partial(destfile, log)
        raise BagSerializationError("Bag serialization failure using tar: "+str(ex), name, ex)

    return destfile

def _tar_deserialize(bagfile, destdir, log, mode):
    _check_deserialize_args(bagfile, destdir)
    destdir = os.path.realpath(destdir)
    outbag = None

    log.info("unpacking tar-serialized bag: %s", os.path.basename(bagfile))
    try:
        with tarfile.open(bagfile, mode) as tf:
            members = tf.getmembers()
            outbag = os.path.join(destdir, _determine_bagname([m.name for m in members], bagfile))
            if os.path.exists(outbag):
                raise StateException("Destination bag already exists: "+outbag)
            for member in members:
                if not _safe_member(member.name, destdir) or not (member.isfile() or member.isdir()):
                    raise BagSerializationError("%s: illegal member: %s" % (bagfile, member.name),
                                                os.path.basename(bagfile))
            if hasattr(tarfile, "data_filter"):
                tf.extractall(destdir, members, filter="data")
            else:
                tf.extractall(destdir, members)
    except (OSError, tarfile.TarError) as ex:
        if outbag:
            _remove_partial(outbag, log)
        raise BagSerializationError("Bag deserialization failure using tar: "+str(ex),
                                    os.path.basename(bagfile), ex)

    return outbag

def tgz_serialize(bagdir, destdir, log, destfile=None):
    """
    serialize a bag as a gzip-compressed tar file.  See :py:func:`zip_serialize` for a 
    description of the parameters.
    """
    return _tar_serialize(bagdir, destdir, log, destfile, ".tgz", "w:gz")

def tgz_deserialize(bagfile, destdir, log):
    """
    unpack a gzip-compressed, tar-serialized bag into a specified directory.  See 
    :py:func:`zip_deserialize` for a description of the parameters.
    """
    return _tar_deserialize(bagfile, destdir, log, "r:gz")

def tar_serialize(bagdir, destdir, log, destfile=None):
    """
    serialize a bag as an uncompressed tar file.  See :py:func:`zip_serialize` for a 
    description of the parameters.
    """
    return _tar_serialize(bagdir, destdir, log, destfile, ".tar", "w")

def tar_deserialize(bagfile, destdir, log):
    """
    unpack an uncompressed, tar-serialized bag into a specified directory.  See 
    :py:func:`zip_deserialize` for a description of the parameters.
    """
    return _tar_deserialize(bagfile, destdir, log, "r:")

class Serializer(object):
    """
    a class that serialize a bag using the archiving technique identified 
    by a given name.  
    """

    def __init__(self, typefunc=None, log=None):
        """
        :param dict typefunc:  a mapping of format names to pairs of functions, (serialize, 
                               deserialize), to initially register
        :param Logger   log:   the default logger to send messages to
        """
        self._map = {}
        if typefunc:
            self._map.update(typefunc)
        self.log = log

    @property
    def formats(self):
        """
        a list of the names of formats supported by this serializer
        """
        return list(self._map.keys())

    def register(self, format, serfunc, deserfunc):
        """
        register a pair of serialization functions to make available via this serializer.
        The serialization function must take 3 arguments:
          bagdir -- the root directory of the bag to serialize
          destdir -- the directory to write the output bagfile into.  
          log -- a logger object to send messages to.
        The deserialization function also takes 3 arguments:
          bagfile -- the serialized bag file
          destdir -- the directory to unpack the bag into
          log -- a logger object to send messages to.

        :param format str:   the name users can use to select the serialization
                             format; this is also the extension given to serialized files.
        :param serfunc func:  the serialization function to associate with this name.  
        :param deserfunc func:  the deserialization function to associate with this name.  
        """
        if not callable(serfunc) or not callable(deserfunc):
            raise TypeError("Serializer.register(): serfunc and deserfunc must be functions")
        self._map[format] = (serfunc, deserfunc)

    def _get_log(self, log):
        if log:
            return log
        if self.log:
            return self.log
        return _defaultlog()

    def serialize(self, bagdir, destdir, format, log=None):
        """
        serialize a bag using the named serialization format
        :return:  the path to the output archive file
        """
        if format not in self._map:
            raise BagSerializationError("Serialization format not supported: "+
                                        str(format))
        return self._map[format][0](bagdir, destdir, self._get_log(log))

    def deserialize(self, bagfile, destdir, format=None, log=None):
        """
        unpack a bag file based on the serialization format indicated by its name
        :param str bagfile:  the name of the serialized bag file
        :param str destdir:  the output directory to write the the unpacked bag into
        :param str format:   the serialization format to assume; if None, the format will 
                               discerned from the bag file's name
        :param log:   the Logger object to send comments to 
        :return:  the path to the unpacked bag's root directory
        """
        if not format:
            format = self.format_of(bagfile)
        if format not in self._map:
            raise BagSerializationError("Serialization format not supported: "+
                                        str(format))
        return self._map[format][1](bagfile, destdir, self._get_log(log))

    def format_of(self, bagfile):
        """
        return the name of the serialization format implied by the given bag file name's extension
        """
        format = os.path.splitext(bagfile)[1][1:]
        if not format or len(format) > 5:
            raise BagSerializationError("Unable to determine serialization format for "+bagfile,
                                        os.path.basename(bagfile))
        return format

class DefaultSerializer(Serializer):
    """
    a Serializer configured for some default serialization formats: zip, tgz, tar.
    """

    def __init__(self, log=None):
        super(DefaultSerializer, self).__init__({
            "zip": (zip_serialize, zip_deserialize),
            "tgz": (tgz_serialize, tgz_deserialize),
            "tar": (tar_serialize, tar_deserialize)
        }, log)
