"""
constants defining the AIP packaging format.  These names are shared by all producers and 
consumers of AIPs and must not change.
"""

# the name of the flat property section that identifies the packed object
OBJFILE = "object.properties"

# the name of the stanza section holding the object's metadata
MDFILE = "metadata.xml"

# the name of the metadata stanza
MDSTANZA = "metadata"

# the name of the stanza section listing bitstreams packed by reference
REFFILE = "references.xml"
REFSTANZA = "references"

# property keys recognized in OBJFILE
BAG_TYPE = "BAG_TYPE"
OBJECT_TYPE = "OBJECT_TYPE"
OBJECT_ID = "OBJECT_ID"
OWNER_ID = "OWNER_ID"

# the BAG_TYPE value for this family of packages
AIP_BAG_TYPE = "AIP"

# the name of the logo payload carried by container objects
LOGO = "logo"

# the size() method value that excludes descendants
NORECURSE = "norecurse"

# the archive format used when none is requested
DEF_ARCHIVE_FORMAT = "zip"

# BagIt conventions
BAGIT_VERSION = "0.97"
BAGIT_ENCODING = "UTF-8"
BAG_PAYLOAD_DIR = "data"
CHECKSUM_ALG = "sha256"
