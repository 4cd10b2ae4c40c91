# ===== REQUEST MIDDLEWARE =====
"""
Custom middleware for the KorX backend.
Provides request logging and upload validation for the photo, id card
and avatar endpoints.
"""

import logging
import os
import re
import time
from typing import Any, Dict

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """
    Logs every API request with its status code and duration.
    Failed authentication attempts are logged as warnings.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        duration_ms = (time.monotonic() - started) * 1000

        if request.path.startswith('/api/'):
            logger.info(
                f"{request.method} {request.path} {response.status_code} {duration_ms:.0f}ms"
            )
            if response.status_code == 401:
                self._log_failed_auth(request)

        return response

    def _log_failed_auth(self, request):
        """Log failed authentication attempts."""
        logger.warning(
            f"Failed authentication attempt from {self._get_client_ip(request)}",
            extra={
                'ip_address': self._get_client_ip(request),
                'path': request.path,
                'user_agent': request.META.get('HTTP_USER_AGENT', 'Unknown'),
            }
        )

    def _get_client_ip(self, request) -> str:
        """Get real client IP address."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR', 'unknown')


class FileUploadSecurityMiddleware:
    """
    Validates multipart uploads before they reach the views.
    Only images, PDFs and short videos are accepted.
    """

    # Endpoints that accept files: property photos, person id cards, profile pictures
    upload_paths = (
        re.compile(r'^/api/properties/\d+/upload/$'),
        re.compile(r'^/api/persons/(\d+/)?$'),
        re.compile(r'^/api/profile/$'),
    )

    def __init__(self, get_response):
        self.get_response = get_response

        self.allowed_extensions = {
            '.jpg', '.jpeg', '.png', '.gif', '.webp', '.heic',
            '.pdf',
            '.mp4', '.mov',
        }
        self.allowed_mime_prefixes = ('image/', 'video/')
        self.allowed_mime_types = {'application/pdf', 'application/octet-stream'}

        self.max_file_size = getattr(settings, 'MAX_UPLOAD_FILE_SIZE', 10 * 1024 * 1024)

        # Malicious patterns to check in filenames
        self.dangerous_patterns = ['../', '..\\', '<script', '<?php', '<%']

    def __call__(self, request):
        if request.method == 'POST' and self._is_upload_endpoint(request.path):
            validation_result = self._validate_file_upload(request)
            if not validation_result['valid']:
                logger.warning(f"Rejected upload on {request.path}: {validation_result['message']}")
                return JsonResponse(
                    {
                        'error': validation_result['message'],
                        'details': validation_result.get('details', {}),
                    },
                    status=400
                )

        return self.get_response(request)

    def _is_upload_endpoint(self, path: str) -> bool:
        return any(pattern.match(path) for pattern in self.upload_paths)

    def _validate_file_upload(self, request) -> Dict[str, Any]:
        content_type = request.META.get('CONTENT_TYPE', '')
        if not content_type.startswith('multipart/form-data'):
            return {'valid': True}

        for uploaded_file in request.FILES.values():
            if uploaded_file.size > self.max_file_size:
                return {
                    'valid': False,
                    'message': f'File size exceeds limit of {self.max_file_size // (1024 * 1024)}MB',
                    'details': {'file_size': uploaded_file.size, 'max_size': self.max_file_size},
                }

            extension = os.path.splitext(uploaded_file.name)[1].lower()
            if extension not in self.allowed_extensions:
                return {
                    'valid': False,
                    'message': f'File type not allowed. Allowed types: {", ".join(sorted(self.allowed_extensions))}',
                    'details': {'file_extension': extension},
                }

            mime_type = uploaded_file.content_type or ''
            if not (mime_type.startswith(self.allowed_mime_prefixes) or mime_type in self.allowed_mime_types):
                return {
                    'valid': False,
                    'message': 'Invalid file type detected',
                    'details': {'mime_type': mime_type},
                }

            if self._contains_malicious_patterns(uploaded_file.name):
                return {
                    'valid': False,
                    'message': 'Filename contains invalid characters',
                    'details': {'filename': uploaded_file.name},
                }

            if extension == '.pdf' and not self._has_pdf_header(uploaded_file):
                return {
                    'valid': False,
                    'message': 'Invalid PDF file format',
                }

        return {'valid': True}

    def _contains_malicious_patterns(self, filename: str) -> bool:
        filename_lower = filename.lower()
        return any(pattern in filename_lower for pattern in self.dangerous_patterns)

    def _has_pdf_header(self, uploaded_file) -> bool:
        uploaded_file.seek(0)
        first_bytes = uploaded_file.read(4)
        uploaded_file.seek(0)
        return first_bytes == b'%PDF'
