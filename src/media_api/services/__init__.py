"""
Service layer: authentication, request classification, upload orchestration
and listing.
"""
