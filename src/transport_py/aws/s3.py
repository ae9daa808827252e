from typing import Dict, Optional

import boto3

from transport_py.runtime_utils.process_logger import ProcessLogger
from transport_py.runtime_utils.remote_files import BucketCategory, S3Location


def get_s3_client() -> boto3.client:
    """Thin function needed for stubbing tests"""
    return boto3.client("s3")


def permanent_url(bucket_category: BucketCategory, key: str) -> str:
    """
    public url for an object in one of the pipeline buckets. no network call
    is made, the object does not need to exist.
    """
    return S3Location(bucket=bucket_category.bucket, prefix=key).permanent_url


def upload_bytes(
    bucket_category: BucketCategory,
    body: bytes,
    key: str,
    extra_args: Optional[Dict] = None,
) -> str:
    """
    Upload an in memory object to an S3 Bucket

    :param bucket_category: which pipeline bucket to write to
    :param body: object content
    :param key: S3 object key inside of the bucket
    :param extra_args: additional put_object arguments, e.g. ContentType

    :return: permanent url of the uploaded object
    """
    location = S3Location(bucket=bucket_category.bucket, prefix=key)
    upload_log = ProcessLogger(
        "s3_upload_bytes",
        s3_uri=location.s3_uri,
        size_bytes=len(body),
    )
    upload_log.log_start()

    if extra_args is None:
        extra_args = {}

    try:
        s3_client = get_s3_client()
        s3_client.put_object(Bucket=location.bucket, Key=location.prefix, Body=body, **extra_args)
    except Exception as exception:
        upload_log.log_failure(exception=exception)
        raise exception

    upload_log.log_complete()
    return location.permanent_url
