import boto3
import os
import uuid
from botocore.exceptions import NoCredentialsError
from urllib.parse import urlparse
from werkzeug.utils import secure_filename


def _s3_client():
    return boto3.client(
        "s3",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name=os.getenv("AWS_REGION"),
    )


def build_object_key(folder, filename):
    """e.g. ``posts/12/3f1c..._cut.jpg``"""
    return f"{folder}/{uuid.uuid4()}_{secure_filename(filename or 'upload')}"


def upload_file_to_s3(file, filename, bucket_name=None, content_type=None):
    bucket_name = bucket_name or os.getenv("S3_BUCKET_NAME")
    s3 = _s3_client()
    extra_args = {"ACL": "public-read"}
    if content_type:
        extra_args["ContentType"] = content_type
    try:
        s3.upload_fileobj(file, bucket_name, filename, ExtraArgs=extra_args)
        base_url = os.getenv("S3_BASE_URL")
        generated_url = f"{base_url}/{filename}"

        return generated_url

    except NoCredentialsError:
        raise Exception("AWS credentials not found. Check environment variables.")


def delete_file_from_s3(image_url, bucket_name=None):
    bucket_name = bucket_name or os.getenv("S3_BUCKET_NAME")
    s3 = _s3_client()

    try:
        parsed = urlparse(image_url)
        key = parsed.path.lstrip("/")

        s3.delete_object(Bucket=bucket_name, Key=key)
        return True

    except NoCredentialsError:
        raise Exception("AWS credentials not found. Check environment variables.")
    except Exception as e:
        print(f"Error deleting file from S3: {e}")
        return False


def file_size(file_storage):
    """Size in bytes of an uploaded werkzeug FileStorage."""
    stream = file_storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def check_upload(file_storage, allowed_prefixes=("image/",), max_bytes=10 * 1024 * 1024, label="File"):
    """Return an error message for an unacceptable upload, or None."""
    content_type = file_storage.mimetype or ""
    if not content_type.startswith(tuple(allowed_prefixes)):
        return f"{label} has an unsupported content type"
    if file_size(file_storage) > max_bytes:
        return f"{label} must not exceed {max_bytes // (1024 * 1024)}MB"
    return None


def store_upload(file_storage, folder):
    """Upload under a fresh key in ``folder`` and return the public URL."""
    key = build_object_key(folder, file_storage.filename)
    return upload_file_to_s3(file_storage, key, content_type=file_storage.mimetype)
