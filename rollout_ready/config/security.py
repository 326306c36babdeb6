# rollout_ready/config/security.py
# Security configuration for sessions, passwords and file uploads

import os
from typing import Set

from dotenv import load_dotenv

load_dotenv()


class SecurityConfig:
    """Security configuration for the application"""

    # Session tokens
    SESSION = {
        'secret_key': os.getenv('SECRET_KEY', 'change-me-in-production'),
        'algorithm': os.getenv('ALGORITHM', 'HS256'),
        'duration_days': int(os.getenv('SESSION_DURATION_DAYS', 7)),
        'cookie_name': os.getenv('SESSION_COOKIE_NAME', 'auth-token'),
        'cookie_secure': os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true',
    }

    # Password rules
    PASSWORDS = {
        'min_length': int(os.getenv('PASSWORD_MIN_LENGTH', 6)),
        'register_min_length': int(os.getenv('REGISTER_PASSWORD_MIN_LENGTH', 8)),
        'random_length': 12,
        'bcrypt_rounds': int(os.getenv('BCRYPT_ROUNDS', 12)),
    }

    # File upload security settings
    FILE_UPLOAD = {
        'max_file_size': int(os.getenv('MAX_FILE_SIZE', 10 * 1024 * 1024)),  # 10MB
        'allowed_mime_types': {
            # Documents
            'application/pdf',
            'application/msword',
            'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
            'text/plain',
            # Spreadsheets
            'application/vnd.ms-excel',
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
            # Presentations
            'application/vnd.ms-powerpoint',
            'application/vnd.openxmlformats-officedocument.presentationml.presentation',
            # Images
            'image/jpeg',
            'image/jpg',
            'image/png',
            'image/gif',
        },
    }

    # File storage
    STORAGE = {
        'upload_dir': os.getenv('UPLOAD_DIR', 'uploads'),
    }

    # Default administrator created by create_tables.py / seeding
    DEFAULT_ADMIN = {
        'username': os.getenv('ADMIN_USERNAME', 'admin'),
        'email': os.getenv('ADMIN_EMAIL', 'admin@rolloutready.com'),
        'password': os.getenv('ADMIN_PASSWORD', 'admin123'),
    }

    @classmethod
    def get_allowed_mime_types(cls) -> Set[str]:
        """Get the MIME types accepted for task attachments"""
        return set(cls.FILE_UPLOAD['allowed_mime_types'])
