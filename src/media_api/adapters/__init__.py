"""
Adapter layer for the Media Uploads API.

Contains the object-storage backend (S3) and the multipart decoder.
"""
