import os
import tempfile
from dataclasses import dataclass
from enum import Enum

# bucket constants
S3_HISTORY: str = os.environ.get("HISTORY_BUCKET", "unset_HISTORY")

# host used to build public object urls, objects are served as
# https://<bucket>.<host>/<key>
S3_HOST: str = os.environ.get("S3_HOST", "s3.amazonaws.com")


class BucketCategory(Enum):
    """
    the buckets the pipeline writes to, named by what they hold rather than
    by their environment specific bucket name
    """

    HISTORY = "history"

    @property
    def bucket(self) -> str:
        """resolve the bucket name for this category"""
        if self == BucketCategory.HISTORY:
            return S3_HISTORY
        raise NotImplementedError(f"No bucket for category {self.name}")


@dataclass
class S3Location:
    """
    wrapper for a bucket name and key pair used to define an s3 location
    """

    bucket: str
    prefix: str

    @property
    def s3_uri(self) -> str:
        """generate the full s3 uri for the location"""
        return f"s3://{self.bucket}/{self.prefix}"

    @property
    def permanent_url(self) -> str:
        """public url the object is served from"""
        return f"https://{self.bucket}.{S3_HOST}/{self.prefix}"


def scratch_root() -> str:
    """
    local directory for transient downloads. TEMP_DIR is read on every call
    so tests can point it at a temporary directory.
    """
    return os.environ.get("TEMP_DIR", tempfile.gettempdir())
