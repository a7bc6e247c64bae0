"""
Image hosting through Cloudinary.
"""
import logging

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from flask import current_app

from errors import UploadError

logger = logging.getLogger(__name__)


def is_image_data(data):
    return isinstance(data, str) and data.startswith('data:image')


class ImageUploader:
    """Uploads ``data:image/...`` URIs and returns the hosted URL"""

    def _configure(self):
        config = current_app.config
        cloud_name = config.get('CLOUDINARY_CLOUD_NAME')
        api_key = config.get('CLOUDINARY_API_KEY')
        api_secret = config.get('CLOUDINARY_API_SECRET')
        if not (cloud_name and api_key and api_secret):
            raise UploadError('Image uploads are not configured')
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def upload(self, data):
        if not is_image_data(data):
            raise UploadError('Failed to upload image', details='Expected a data:image URI')

        self._configure()
        try:
            result = cloudinary.uploader.upload(
                data,
                folder=current_app.config.get('UPLOAD_FOLDER', 'rent_website'),
                resource_type='auto'
            )
        except CloudinaryError as e:
            logger.error(f"[UPLOAD] Cloudinary upload failed: {e}")
            raise UploadError('Failed to upload image', details=str(e))

        url = result.get('secure_url')
        if not url:
            raise UploadError('Failed to upload image', details='No secure_url in Cloudinary response')

        logger.info(f"[UPLOAD] Uploaded image to {url}")
        return url

    def upload_many(self, images):
        """Upload every image URI in ``images``, skipping entries that are not image data"""
        return [self.upload(data) for data in images if is_image_data(data)]


# Create service instance
image_uploader = ImageUploader()
