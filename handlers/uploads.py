"""Image upload handler for property photos and profile pictures."""

from models.validation import MAX_UPLOAD_BYTES
from services.supabase_storage import storage
from utils.decorators import lambda_handler, parse_multipart_body, require_auth
from utils.exceptions import ValidationError
from utils.responses import success_response


@lambda_handler()
@require_auth
@parse_multipart_body
def upload_image(event, context):
    """
    Store an uploaded image and return a signed URL for it.

    POST /upload-image (multipart/form-data, field ``file``)

    Args:
        event: Lambda event object with a multipart body
        context: Lambda context object

    Returns:
        HTTP response with the stored object path and its signed URL
    """
    upload = event["files"].get("file")
    if upload is None or not upload.content:
        raise ValidationError("No file provided")

    if upload.size > MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit"
        )

    stored = storage.upload(
        event["auth"]["user_id"], upload.filename, upload.content, upload.content_type
    )

    return success_response(data={"filePath": stored["path"], "url": stored["url"]})
