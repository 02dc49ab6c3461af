"""
storefront/catalog
------------------
Products and store settings read by checkout and personalisation.
"""
