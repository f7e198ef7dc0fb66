"""
themesync runtime: webhook server, Shopify client, spreadsheet sink and the
sync pipeline that ties them to the core extractor and resolver.
"""
