"""
The packer for items.

An item AIP carries the item's metadata (all attributes currently set; item metadata is
open-ended) and its bitstreams, each stored as a payload named ``BUNDLE/NAME``.  Which bundles
take part is controlled by two filters, each given as a comma-separated list of bundle names:

``content filter``
    the bundles to pack and restore; a list prefixed with "!" names the bundles to *exclude*.
    With no filter set, all bundles take part.
``reference filter``
    the bundles whose bitstreams are packed by reference only:  rather than copying the bytes,
    the AIP lists each such bitstream (with its size and checksum) in a ``references`` stanza.
    The same "!" prefix is supported.  With no filter set, nothing is packed by reference.
"""
from collections import OrderedDict

from .base import Packer
from ..constants import REFFILE, REFSTANZA
from ..exceptions import StateException

class BundleFilter(object):
    """
    a test for whether a bundle is selected by a filter expression
    """

    def __init__(self, expr=None, default=True):
        """
        :param str  expr:   a comma-separated list of bundle names, optionally prefixed with "!"
                            to indicate exclusion; None or an empty string selects the default
        :param bool default:  whether a bundle is selected when expr is empty
        """
        self.default = default
        self.exclude = False
        self.names = set()
        if expr:
            expr = expr.strip()
            if expr.startswith('!'):
                self.exclude = True
                expr = expr[1:]
            self.names = set(n.strip() for n in expr.split(',') if n.strip())
            if not self.names:
                raise ValueError("Empty bundle filter: " + repr(expr))

    @property
    def is_set(self):
        return bool(self.names)

    def selects(self, bundle):
        if not self.names:
            return self.default
        return (bundle in self.names) != self.exclude

    def __repr__(self):
        if not self.names:
            return "BundleFilter(%s)" % ("all" if self.default else "none")
        return "BundleFilter(%s%s)" % ("!" if self.exclude else "", ",".join(sorted(self.names)))

class ItemPacker(Packer):
    """
    a Packer for Item objects.
    """

    def __init__(self, item, archfmt=None, config=None, log=None):
        super(ItemPacker, self).__init__(item, archfmt, config, log)
        self._content = BundleFilter(self.cfg.get('content_filter'), True)
        self._refs = BundleFilter(self.cfg.get('reference_filter'), False)

    @property
    def item(self):
        return self._node

    @item.setter
    def item(self, item):
        self._node = item

    def set_content_filter(self, filter):
        self._content = BundleFilter(filter, True)

    def set_reference_filter(self, filter):
        self._refs = BundleFilter(filter, False)

    def _copied(self, bundle):
        return self._content.selects(bundle) and not self._refs.selects(bundle)

    def _referenced(self, bundle):
        return self._content.selects(bundle) and self._refs.selects(bundle)

    def pack(self, packdir):
        with self._new_bag(packdir) as bag:
            self._write_object_properties(bag)
            self._write_metadata(bag, self.item.metadata_fields())

            refs = []
            for bundle, bitstreams in self.item.bundles.items():
                for bs in bitstreams:
                    if self._copied(bundle):
                        with bs.retrieve() as stream:
                            bag.add_data(bundle + '/' + bs.name, bs.size, stream)
                    elif self._referenced(bundle):
                        refs.append((bundle, bs))

            if refs:
                with bag.xml_writer(REFFILE) as xwriter:
                    xwriter.start_stanza(REFSTANZA)
                    for bundle, bs in refs:
                        xwriter.write_value(bundle + '/' + bs.name, bs.key,
                                            size=str(bs.size), checksum=bs.checksum)
                    xwriter.end_stanza()

            bag.close()
            archive = bag.deflate(self.archfmt)

        self.log.info("Packed item %s into %s", self.item.handle, archive)
        return archive

    def unpack(self, archive):
        self._check_archive(archive)
        with self._new_bag(archive) as bag:
            self._replay_metadata(bag, None)

            # bundles recorded by reference in the AIP are never replaced
            refs = self._read_references(bag)
            refbundles = set(r.split('/', 1)[0] for r in refs)
            present = set(b + '/' + bs.name for b, bss in self.item.bundles.items() for bs in bss)
            missing = [r for r in refs if r not in present]
            if missing:
                raise StateException("%s: referenced bitstream(s) not found in item: %s" %
                                     (self.item.handle, ", ".join(missing)))

            def replaced(bundle):
                return self._copied(bundle) and bundle not in refbundles

            # group the payloads by bundle, keeping only the selected ones
            restored = OrderedDict()
            for name in bag.payload_names():
                if '/' not in name:
                    self.log.warning("%s: ignoring payload outside of a bundle: %s",
                                     self.item.handle, name)
                    continue
                bundle, bsname = name.split('/', 1)
                if replaced(bundle):
                    restored.setdefault(bundle, []).append((bsname, name))

            for bundle in list(self.item.bundles.keys()):
                if replaced(bundle):
                    self.item.remove_bundle(bundle)
            for bundle, payloads in restored.items():
                for bsname, name in payloads:
                    with bag.data_stream(name) as stream:
                        self.item.add_bitstream(bundle, bsname, stream)

            self.item.update()

        self.log.info("Restored item %s from %s", self.item.handle, archive)

    def _read_references(self, bag):
        reader = bag.xml_reader(REFFILE)
        if reader is None:
            return []
        with reader:
            if not reader.find_stanza(REFSTANZA):
                return []
            return [value.name for value in reader]

    def size(self, method=None):
        # items have no descendants, so method makes no difference
        size = 0
        for bundle, bitstreams in self.item.bundles.items():
            if self._copied(bundle):
                size += sum(bs.size for bs in bitstreams)
        return size
