"""
Core business logic for image optimization.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
Pillow is the one library it leans on, because transcoding *is* the business
logic here. Storage is reached only through the ObjectStore protocol, so the
pipeline can be tested against an in-memory store.
"""
