"""
This module defines the :py:class:`Packer` interface, the contract that every packer for a kind of
content object must implement, along with some common functionality for writing and reading the
standard sections of an AIP bag.
"""
import os, logging
from abc import ABCMeta, abstractmethod
from collections.abc import Mapping

from ..bagit import Bag
from ..constants import (OBJFILE, MDFILE, MDSTANZA, BAG_TYPE, OBJECT_TYPE, OBJECT_ID, OWNER_ID,
                         AIP_BAG_TYPE, DEF_ARCHIVE_FORMAT, NORECURSE, LOGO)
from ..exceptions import MissingArchive
from ..content import schema
from .. import system as _sys

class Packer(object, metaclass=ABCMeta):
    """
    an object that packs a single content object into an archival information package (AIP) and
    restores a content object from one.  A Packer instance is bound to exactly one content object.

    Packers make use of a configuration dictionary; this base class supports the following
    properties:

    :prop archive_format str ("zip"):  the serialization format for AIPs, used when one is not
                      given at construction time
    :prop bag dict:   the configuration to pass to the :py:class:`~aipack.bagit.Bag` instances
                      used to pack and unpack
    """

    def __init__(self, node, archfmt: str=None, config: Mapping=None, log: logging.Logger=None):
        """
        :param ContentNode node:  the content object to pack or unpack into
        :param str      archfmt:  the serialization format for AIPs (e.g. "zip" or "tgz")
        :param dict      config:  the packer configuration
        :param Logger       log:  the logger to send messages to
        """
        if config is None:
            config = {}
        self.cfg = config
        self._basecfg = config
        if not archfmt:
            archfmt = self.cfg.get('archive_format', DEF_ARCHIVE_FORMAT)
        self.archfmt = archfmt
        if not log:
            log = _sys.getSysLogger().getChild("packer")
        self.log = log
        self._node = node

    @property
    def node(self):
        """
        the content object this packer packs and unpacks
        """
        return self._node

    @abstractmethod
    def pack(self, packdir: str) -> str:
        """
        pack the content object into an AIP.
        :param str packdir:  the directory to stage the AIP's contents in; its name will be the
                             name of the AIP.  The archive file will be written alongside it.
        :return:  the path to the AIP archive file
        :rtype: str
        """
        raise NotImplementedError()

    @abstractmethod
    def unpack(self, archive: str):
        """
        restore the content object from the given AIP archive file and commit it to its store.
        :param str archive:  the path to the AIP archive
        :raise MissingArchive:  if archive is None or does not exist
        """
        raise NotImplementedError()

    @abstractmethod
    def size(self, method: str=None) -> int:
        """
        return the number of payload bytes that packing this object (and, unless method is
        "norecurse", all of its descendants) would involve.
        """
        raise NotImplementedError()

    @abstractmethod
    def set_content_filter(self, filter: str):
        """
        configure which content categories participate in packing and unpacking
        """
        raise NotImplementedError()

    @abstractmethod
    def set_reference_filter(self, filter: str):
        """
        configure which content categories are packed by reference only
        """
        raise NotImplementedError()

    def _new_bag(self, location):
        return Bag(location, self.cfg.get('bag', {}), self.log.getChild("bag"))

    def _check_archive(self, archive):
        if not archive or not os.path.isfile(str(archive)):
            raise MissingArchive(self._node.type, self._node.handle)

    def _packer_for(self, child):
        from .factory import instance
        return instance(child, self.archfmt, self._basecfg, self.log)

    def _children_size(self, children, method):
        size = 0
        if method != NORECURSE:
            for child in children:
                size += self._packer_for(child).size(method)
        return size

    def _write_object_properties(self, bag):
        # the bag type and object type come first so that tools can recognize the AIP early
        parent = self._node.parent
        with bag.flat_writer(OBJFILE) as fwriter:
            fwriter.write_property(BAG_TYPE, AIP_BAG_TYPE)
            fwriter.write_property(OBJECT_TYPE, self._node.type)
            fwriter.write_property(OBJECT_ID, self._node.handle)
            if parent is not None:
                fwriter.write_property(OWNER_ID, parent.handle)
        bag.info["External-Identifier"] = self._node.handle
        bag.info["AIP-Schema-Version"] = schema.SCHEMA_VERSION

    def _write_metadata(self, bag, fields):
        with bag.xml_writer(MDFILE) as xwriter:
            xwriter.start_stanza(MDSTANZA)
            for field in fields:
                xwriter.write_value(field, self._node.get_metadata(field))
            xwriter.end_stanza()

    def _read_metadata(self, bag):
        """
        iterate through the values in the bag's metadata stanza
        """
        reader = bag.xml_reader(MDFILE)
        if reader is None:
            return
        with reader:
            if reader.find_stanza(MDSTANZA):
                for value in reader:
                    yield value

    def _replay_metadata(self, bag, fields):
        """
        set the node's metadata attributes from the bag's metadata stanza.  Only the attributes
        in fields are set (or all of them if fields is None); attributes not found in the bag are
        left unchanged.
        """
        for value in self._read_metadata(bag):
            if fields is None or value.name in fields:
                self._node.set_metadata(value.name, value.val)
            else:
                self.log.warning("%s: ignoring unrecognized %s attribute: %s",
                                 self._node.handle, self._node.type, value.name)

    def _write_logo(self, bag):
        logo = self._node.logo
        if logo is not None:
            with logo.retrieve() as stream:
                bag.add_data(LOGO, logo.size, stream)

    def _restore_logo(self, bag):
        # an absent logo payload means the node should have no logo
        stream = bag.data_stream(LOGO)
        try:
            self._node.set_logo(stream)
        finally:
            if stream is not None:
                stream.close()
