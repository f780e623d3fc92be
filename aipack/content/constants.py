"""
names for the kinds of objects that make up a content tree
"""
COMMUNITY = "community"
COLLECTION = "collection"
ITEM = "item"
