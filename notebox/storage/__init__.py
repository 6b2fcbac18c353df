# Storage package init
"""
Notebox Backend — Object Storage
==================================

What:  Blob persistence for attachments behind the `ObjectStore` protocol.

Backends:
    - s3_store.py:    S3-compatible API through boto3 (MinIO in production)
    - local_store.py: Filesystem directory with self-served signed URLs
    - keys.py:        The one place object keys are derived
"""
