"""
This module provides the :py:class:`Bag` class, a staging area on disk for assembling the
contents of an archival information package (AIP) and for reading them back.

A Bag is laid out according to the BagIt conventions:  it contains a flat property file and
an XML "stanza" file (both stored as tag files at the top of the bag) along with any number of
named binary payloads (stored under the bag's ``data`` directory).  When the bag is closed, the
BagIt declaration, bag-info, and checksum manifests are written so that the bag can be verified
once it is serialized into an archive file with :py:meth:`Bag.deflate`.  A Bag constructed from
an existing archive file is transparently unpacked into a private staging directory.

A Bag instance is meant to serve a single pack or unpack operation; it should always be released
with :py:meth:`Bag.empty` (or by using it as a context manager):

.. code-block:: python

   with Bag(archive) as bag:
       reader = bag.xml_reader("metadata.xml")
       ...
"""
import os, re, base64, posixpath, tempfile
from collections import OrderedDict, namedtuple
from datetime import date
from xml.etree import ElementTree as ET
from xml.sax.saxutils import XMLGenerator
from xml.sax.xmlreader import AttributesImpl

import bagit

from .exceptions import BagException, BagValidationError
from .serialize import DefaultSerializer
from ..exceptions import StateException
from ..utils.io import copy_stream, DEF_BUFSIZE
from ..utils.datamgmt import rmtree
from ..utils.logging import blab
from ..constants import (BAGIT_VERSION, BAGIT_ENCODING, BAG_PAYLOAD_DIR, CHECKSUM_ALG,
                         DEF_ARCHIVE_FORMAT)
from .. import system as _sys

__all__ = [ 'Bag', 'FlatWriter', 'FlatReader', 'XmlWriter', 'XmlReader', 'Value' ]

BAGIT_FILE = "bagit.txt"
BAGINFO_FILE = "bag-info.txt"

STANZAS_ELEMENT = "stanzas"
VALUE_ELEMENT = "value"
ENCODING_ATTR = "encoding"
BASE64_ENCODING = "base64"

_reserved_tag_re = re.compile(r"^(bagit\.txt|bag-info\.txt|fetch\.txt|(tag)?manifest-\w+\.txt)$")
_xmlname_re = re.compile(r"^[A-Za-z_][\w.\-]*$")
_propkey_re = re.compile(r"^[^\s=#]+$")

# characters that cannot appear in an XML 1.0 document, even as character references
_xml_illegal_re = re.compile(r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

Value = namedtuple("Value", "name val attrs")
Value.__doc__ = "a single named value read from a stanza"

def _escape_prop(value):
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")

_unescape_re = re.compile(r"\\(.)")
_unescapes = { "n": "\n", "r": "\r", "\\": "\\" }
def _unescape_prop(value):
    return _unescape_re.sub(lambda m: _unescapes.get(m.group(1), m.group(1)), value)

class FlatWriter(object):
    """
    a writer for a flat property section, a text file of ``KEY = value`` lines.  Instances are
    obtained via :py:meth:`Bag.flat_writer`.
    """

    def __init__(self, path, onclose=None):
        self._path = path
        self._onclose = onclose
        self._fd = open(path, 'a', encoding=BAGIT_ENCODING, newline='\n')

    @property
    def closed(self):
        return self._fd is None

    def write_property(self, key, value):
        """
        append a property to the section.  Values are converted to strings; line breaks and
        backslashes within them are escaped.
        """
        if self._fd is None:
            raise StateException("%s: property writer is closed" % os.path.basename(self._path))
        if not key or not _propkey_re.match(key):
            raise ValueError("Illegal property key: " + repr(key))
        self._fd.write("%s = %s\n" % (key, _escape_prop(str(value))))

    def close(self):
        """
        flush and close the section.  No more properties can be written after this call.
        """
        if self._fd is None:
            return
        try:
            self._fd.close()
        finally:
            self._fd = None
            if self._onclose:
                self._onclose(self)

    def __enter__(self):
        return self

    def __exit__(self, e1, e2, e3):
        self.close()
        return False

class FlatReader(object):
    """
    a reader for a flat property section.  Property files are small, so the properties are
    loaded in full when the reader is created.
    """

    def __init__(self, path):
        self._props = OrderedDict()
        with open(path, encoding=BAGIT_ENCODING) as fd:
            for line in fd:
                line = line.rstrip('\n')
                if not line.strip() or line.lstrip().startswith('#'):
                    continue
                key, sep, val = line.partition(" = ")
                if not sep:
                    key, sep, val = line.partition("=")
                    val = val.strip()
                self._props[key.strip()] = _unescape_prop(val)

    def get_property(self, key, default=None):
        """
        return the value of the named property or ``default`` if it is not set
        """
        return self._props.get(key, default)

    def keys(self):
        return list(self._props.keys())

    def properties(self):
        """
        return all of the properties as an ordered dictionary
        """
        return OrderedDict(self._props)

    def __contains__(self, key):
        return key in self._props

    def __iter__(self):
        return iter(self._props)

class XmlWriter(object):
    """
    a writer for a structured metadata section made up of named stanzas, each holding an ordered
    list of named values.  The output is streamed to disk as it is written.  Instances are
    obtained via :py:meth:`Bag.xml_writer`.
    """

    def __init__(self, path, onclose=None):
        self._path = path
        self._onclose = onclose
        self._stack = []
        self._fd = open(path, 'w', encoding=BAGIT_ENCODING, newline='\n')
        self._gen = XMLGenerator(self._fd, encoding=BAGIT_ENCODING.lower())
        self._gen.startDocument()
        self._gen.startElement(STANZAS_ELEMENT, AttributesImpl({}))

    @property
    def closed(self):
        return self._fd is None

    def _check_open(self):
        if self._fd is None:
            raise StateException("%s: stanza writer is closed" % os.path.basename(self._path))

    def _indent(self, depth):
        self._gen.ignorableWhitespace("\n" + "  " * depth)

    def start_stanza(self, name):
        """
        open a new stanza with the given name.  Values written after this call will be
        included in this stanza until :py:meth:`end_stanza` is called.
        """
        self._check_open()
        if not name or not _xmlname_re.match(name) or name == VALUE_ELEMENT:
            raise ValueError("Illegal stanza name: " + repr(name))
        self._indent(len(self._stack)+1)
        self._gen.startElement(name, AttributesImpl({}))
        self._stack.append(name)

    def _characters(self, text):
        # parsers normalize bare carriage returns to newlines, so they go out as character
        # references; XMLGenerator has no call for writing those
        lines = text.split("\r")
        self._gen.characters(lines[0])
        for line in lines[1:]:
            self._fd.write("&#13;")
            self._gen.characters(line)

    def write_value(self, name, value, **attrs):
        """
        add a named value to the currently open stanza.  Nothing is written if value is None.
        A value containing characters that XML cannot carry is written base64-encoded (and is
        decoded transparently by :py:class:`XmlReader`).
        :param str  name:   the name of the value (e.g. a metadata field name)
        :param str value:   the value to write
        :param attrs:       extra qualifying attributes to attach to the value; attributes with
                            a None value are ignored.
        :raise ValueError:  if an attribute name is reserved or an attribute value contains
                            characters that XML cannot carry
        """
        if value is None:
            return
        self._check_open()
        if not self._stack:
            raise StateException("write_value(): no stanza is open")
        atts = OrderedDict(name=str(name))
        for key, val in attrs.items():
            if key in atts or key == ENCODING_ATTR or not _xmlname_re.match(key):
                raise ValueError("Illegal value attribute name: " + repr(key))
            if val is not None:
                atts[key] = str(val)
        for key, val in atts.items():
            if _xml_illegal_re.search(val):
                raise ValueError("%s: attribute value contains illegal XML characters" % key)

        text = str(value)
        if _xml_illegal_re.search(text):
            atts[ENCODING_ATTR] = BASE64_ENCODING
            text = base64.b64encode(text.encode(BAGIT_ENCODING)).decode('ascii')

        self._indent(len(self._stack)+1)
        self._gen.startElement(VALUE_ELEMENT, AttributesImpl(atts))
        self._characters(text)
        self._gen.endElement(VALUE_ELEMENT)

    def end_stanza(self):
        """
        close the currently open stanza
        """
        self._check_open()
        if not self._stack:
            raise StateException("end_stanza(): no stanza is open")
        name = self._stack.pop()
        self._indent(len(self._stack)+1)
        self._gen.endElement(name)

    def close(self):
        """
        finish writing the section, ending any stanzas still open.  No more stanzas or values
        can be written after this call.
        """
        if self._fd is None:
            return
        try:
            while self._stack:
                self.end_stanza()
            self._indent(0)
            self._gen.endElement(STANZAS_ELEMENT)
            self._gen.endDocument()
            self._fd.write("\n")
        finally:
            self._fd.close()
            self._fd = None
            if self._onclose:
                self._onclose(self)

    def __enter__(self):
        return self

    def __exit__(self, e1, e2, e3):
        self.close()
        return False

class XmlReader(object):
    """
    a single-pass reader of a stanza section.  Use :py:meth:`find_stanza` to advance to a named
    stanza and then :py:meth:`next_value` (or iteration) to read its values in order.  The file is
    parsed incrementally; it is never loaded into memory in full, and a scan cannot be restarted.
    """

    def __init__(self, path):
        self._path = path
        self._fd = open(path, 'rb')
        self._events = ET.iterparse(self._fd, events=("start", "end"))
        self._depth = 0
        self._stanza = None

    def _next_event(self):
        try:
            return next(self._events)
        except StopIteration:
            return None
        except ET.ParseError as ex:
            raise BagValidationError("%s: malformed stanza file: %s" % (os.path.basename(self._path),
                                                                        str(ex)), cause=ex)

    def _decode(self, elem):
        text = elem.text or ""
        enc = elem.get(ENCODING_ATTR)
        if not enc:
            return text
        if enc != BASE64_ENCODING:
            raise BagValidationError("%s: unsupported value encoding: %s" %
                                     (os.path.basename(self._path), enc))
        try:
            return base64.b64decode(text, validate=True).decode(BAGIT_ENCODING)
        except ValueError as ex:
            raise BagValidationError("%s: undecodable %s value: %s" %
                                     (os.path.basename(self._path), elem.get("name"), str(ex)),
                                     cause=ex)

    def _check_open(self):
        if self._fd is None:
            raise StateException("%s: stanza reader is closed" % os.path.basename(self._path))

    def find_stanza(self, name):
        """
        advance to the next stanza with the given name.
        :return:  True if the stanza was found or False if the end of the section was reached
        :rtype: bool
        """
        self._check_open()
        while self._stanza is not None:
            self.next_value()

        ev = self._next_event()
        while ev:
            event, elem = ev
            if event == "start":
                self._depth += 1
                if self._depth == 2 and elem.tag == name:
                    self._stanza = name
                    return True
            else:
                self._depth -= 1
                if self._depth == 1:
                    elem.clear()
            ev = self._next_event()
        return False

    def next_value(self):
        """
        return the next value from the current stanza, or None if there are no more values in it
        (or no stanza has been found).
        :rtype: Value
        """
        self._check_open()
        if self._stanza is None:
            return None

        ev = self._next_event()
        while ev:
            event, elem = ev
            if event == "start":
                self._depth += 1
            else:
                self._depth -= 1
                if self._depth == 1:
                    # the end of the stanza
                    self._stanza = None
                    elem.clear()
                    return None
                if self._depth == 2 and elem.tag == VALUE_ELEMENT:
                    attrs = OrderedDict((k, v) for k, v in elem.attrib.items()
                                        if k not in ("name", ENCODING_ATTR))
                    out = Value(elem.get("name"), self._decode(elem), attrs)
                    elem.clear()
                    return out
            ev = self._next_event()

        self._stanza = None
        return None

    def __iter__(self):
        value = self.next_value()
        while value is not None:
            yield value
            value = self.next_value()

    def close(self):
        if self._fd is not None:
            self._fd.close()
            self._fd = None
            self._stanza = None

    def __enter__(self):
        return self

    def __exit__(self, e1, e2, e3):
        self.close()
        return False

class Bag(object):
    """
    a staging area for the contents of an archival information package.

    If ``location`` is an existing file, it is taken to be a serialized bag (an archive file); it
    will be unpacked into a fresh staging directory and made available for reading.  Otherwise,
    ``location`` is the directory where a new bag will be built; the last field of the path will
    be the bag's name.

    This class supports the following configuration parameters:

    :prop staging_dir str:  the directory where archives are unpacked; by default, an archive is
                            unpacked into a new directory alongside the archive file.
    :prop bufsize int (65536):  the maximum number of bytes to read at a time when copying payloads
    :prop validate bool (False):  if True, verify the checksums of an archive's contents when
                            it is opened
    :prop archive_format str ("zip"):  the default serialization format used by :py:meth:`deflate`
    """

    def __init__(self, location, config=None, log=None):
        if not config:
            config = {}
        self.cfg = config
        if not log:
            log = _sys.getSysLogger().getChild("bag")
        self.log = log
        self._bufsize = self.cfg.get('bufsize', DEF_BUFSIZE)
        if not isinstance(self._bufsize, int) or self._bufsize < 1:
            raise ValueError("bufsize config parameter must be a positive integer: " +
                             repr(self._bufsize))
        self._serializer = DefaultSerializer(self.log)
        self._writers = []
        self._archive = None
        self._closed = False
        self._emptied = False
        self.info = OrderedDict()

        if location is None:
            raise ValueError("Bag(): location must be provided")
        location = str(location)
        if os.path.isfile(location):
            self._inflate(location)
        else:
            self._bagdir = os.path.abspath(location)
            self._stagedir = self._bagdir
            if os.path.exists(self._bagdir):
                if not os.path.isdir(self._bagdir) or os.listdir(self._bagdir):
                    raise StateException("Bag directory already exists (and is not empty): " +
                                         self._bagdir)
            os.makedirs(os.path.join(self._bagdir, BAG_PAYLOAD_DIR), exist_ok=True)
            self.log.debug("Building new bag in %s", self._bagdir)

    def _inflate(self, archive):
        parent = self.cfg.get('staging_dir', os.path.dirname(os.path.abspath(archive)))
        if not os.path.isdir(parent):
            raise StateException("Staging directory does not exist: " + parent)
        base = os.path.splitext(os.path.basename(archive))[0]
        self._stagedir = tempfile.mkdtemp(prefix="_"+base+".", dir=parent)
        try:
            self._bagdir = self._serializer.deserialize(archive, self._stagedir, log=self.log)
            if self.cfg.get('validate', False):
                self.validate()
        except Exception:
            rmtree(self._stagedir)
            raise

        self._archive = os.path.abspath(archive)
        self._closed = True
        self.log.debug("Unpacked %s into %s", os.path.basename(archive), self._stagedir)

    @property
    def name(self):
        """
        the name of the bag
        """
        return os.path.basename(self._bagdir)

    @property
    def bagdir(self):
        """
        the path to the bag's root directory
        """
        return self._bagdir

    @property
    def archive(self):
        """
        the path to the archive file this bag was read from or most recently deflated into, or
        None if there is no such file.
        """
        return self._archive

    @property
    def is_closed(self):
        """
        True if this bag no longer accepts additions
        """
        return self._closed

    @property
    def is_emptied(self):
        """
        True if this bag's staging directory has been removed
        """
        return self._emptied

    def _check_usable(self):
        if self._emptied:
            raise StateException("Bag %s has been emptied" % self.name)

    def _check_writable(self):
        self._check_usable()
        if self._closed:
            raise StateException("Bag %s is closed to writing" % self.name)

    def _tag_path(self, name):
        if not name or '/' in name or os.sep in name or name in ('.', '..') or \
           name == BAG_PAYLOAD_DIR or _reserved_tag_re.match(name):
            raise ValueError("Illegal bag section name: " + repr(name))
        return os.path.join(self._bagdir, name)

    def _payload_relpath(self, name):
        if not name:
            raise ValueError("Illegal payload name: " + repr(name))
        path = posixpath.normpath(name.replace(os.sep, '/'))
        if path.startswith('/') or path in ('.', '..') or path.startswith('../'):
            raise ValueError("Illegal payload name: " + repr(name))
        return BAG_PAYLOAD_DIR + '/' + path

    def _payload_path(self, name):
        return os.path.join(self._bagdir, *self._payload_relpath(name).split('/'))

    def _writer_closed(self, writer):
        if writer in self._writers:
            self._writers.remove(writer)

    def flat_writer(self, name):
        """
        open a flat property section with the given name for writing, creating it if necessary.
        :rtype: FlatWriter
        """
        self._check_writable()
        out = FlatWriter(self._tag_path(name), self._writer_closed)
        self._writers.append(out)
        return out

    def flat_reader(self, name):
        """
        return a reader for the named flat property section or None if the section does not exist
        :rtype: FlatReader
        """
        self._check_usable()
        path = self._tag_path(name)
        if not os.path.isfile(path):
            return None
        return FlatReader(path)

    def xml_writer(self, name):
        """
        open a stanza section with the given name for writing.
        :rtype: XmlWriter
        """
        self._check_writable()
        out = XmlWriter(self._tag_path(name), self._writer_closed)
        self._writers.append(out)
        return out

    def xml_reader(self, name):
        """
        return a reader for the named stanza section or None if the section does not exist
        :rtype: XmlReader
        """
        self._check_usable()
        path = self._tag_path(name)
        if not os.path.isfile(path):
            return None
        return XmlReader(path)

    def add_data(self, name, length, stream):
        """
        copy a payload into the bag.  Exactly ``length`` bytes are copied from the given stream.
        :param str    name:  the name to give to the payload; this can be a relative path
                             (using "/" as the delimiter).
        :param int  length:  the number of bytes to copy
        :param stream:       the readable binary stream to copy the payload from
        :raise PayloadLengthMismatch:  if the stream provides fewer or more than ``length``
                             bytes; no payload will be saved in this case.
        """
        self._check_writable()
        if not isinstance(length, int) or length < 0:
            raise ValueError("add_data(): length must be a non-negative integer: " + repr(length))
        path = self._payload_path(name)
        if os.path.exists(path):
            raise StateException("%s: payload already exists in bag" % name)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        try:
            with open(path, 'wb') as fd:
                copy_stream(stream, fd, length, self._bufsize, name=name)
        except Exception:
            if os.path.exists(path):
                os.remove(path)
            raise

        blab(self.log, "Added %d-byte payload, %s, to bag %s", length, name, self.name)

    def data_stream(self, name):
        """
        open the named payload for reading.  The caller is responsible for closing the stream.
        :return:  a readable binary stream, or None if no payload with the given name exists
        """
        self._check_usable()
        path = self._payload_path(name)
        if not os.path.isfile(path):
            return None
        return open(path, 'rb')

    def data_size(self, name):
        """
        return the size in bytes of the named payload or None if it does not exist
        """
        self._check_usable()
        path = self._payload_path(name)
        if not os.path.isfile(path):
            return None
        return os.path.getsize(path)

    def payload_names(self):
        """
        iterate through the names of the payloads currently in the bag, in sorted order
        """
        self._check_usable()
        datadir = os.path.join(self._bagdir, BAG_PAYLOAD_DIR)
        names = []
        for root, subdirs, files in os.walk(datadir):
            for f in files:
                names.append(os.path.relpath(os.path.join(root, f), datadir).replace(os.sep, '/'))
        return iter(sorted(names))

    def close(self):
        """
        finish writing the bag:  any open section writers are closed and the BagIt tag files
        (including the checksum manifests) are written.  No more content can be added after
        this call.
        """
        self._check_usable()
        if self._closed:
            return
        for writer in list(self._writers):
            writer.close()
        self._write_bagit_tags()
        self._closed = True
        self.log.debug("Closed bag %s", self.name)

    def _write_bagit_tags(self):
        # the declaration must exist before bagit will open the directory as a bag
        with open(os.path.join(self._bagdir, BAGIT_FILE), 'w', encoding=BAGIT_ENCODING) as fd:
            fd.write("BagIt-Version: %s\n" % BAGIT_VERSION)
            fd.write("Tag-File-Character-Encoding: %s\n" % BAGIT_ENCODING)

        try:
            bag = bagit.Bag(self._bagdir)
            bag.algorithms = [CHECKSUM_ALG]
            bag.info.update([
                ("Bag-Software-Agent", _sys.agent),
                ("Bagging-Date", date.today().isoformat())
            ])
            bag.info.update((key, str(val)) for key, val in self.info.items())
            bag.save(manifests=True)
        except bagit.BagError as ex:
            raise BagException("Bag %s: failed to write BagIt tag files: %s" % (self.name, str(ex)),
                               self.name, ex)

    def validate(self):
        """
        verify that the bag is complete and that its contents match its checksum manifests.
        :raise BagValidationError:  if the bag is found to be invalid
        """
        self._check_usable()
        try:
            bagit.Bag(self._bagdir).validate()
        except bagit.BagError as ex:
            raise BagValidationError("Bag %s is not valid: %s" % (self.name, str(ex)), self.name, ex)

    def deflate(self, fmt=None, destdir=None):
        """
        serialize the bag into a single archive file.  The bag is closed first if necessary.
        :param str     fmt:  the name of the serialization format to use (e.g. "zip", "tgz");
                             if not provided, the configured default is used.
        :param str destdir:  the directory to write the archive to; by default, it is written
                             into the directory containing the bag's root directory.  This must
                             be provided for bags that were unpacked from an archive.
        :return:  the path to the archive file, named after the bag
        :rtype: str
        """
        self._check_usable()
        if not fmt:
            fmt = self.cfg.get('archive_format', DEF_ARCHIVE_FORMAT)
        if not destdir:
            if self._stagedir != self._bagdir:
                raise StateException("deflate(): destdir required for bag unpacked from archive")
            destdir = os.path.dirname(self._bagdir)
        self.close()

        self._archive = self._serializer.serialize(self._bagdir, destdir, fmt, self.log)
        self.log.info("Deflated bag %s into %s", self.name, self._archive)
        return self._archive

    def empty(self):
        """
        remove the bag's staging directory.  This is safe to call multiple times, and it does
        not remove an archive file that the bag was read from or deflated into.
        """
        if self._emptied:
            return
        for writer in list(self._writers):
            try:
                writer.close()
            except OSError as ex:
                self.log.warning("Trouble closing section writer while emptying bag: %s", str(ex))
        rmtree(self._stagedir)
        self._emptied = True
        self._closed = True
        self.log.debug("Emptied staging directory for bag %s", self.name)

    def __enter__(self):
        return self

    def __exit__(self, e1, e2, e3):
        self.empty()
        return False

    def __repr__(self):
        return "Bag(%s)" % repr(self._bagdir)
