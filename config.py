import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///facade_contest.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Gemini image generation
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.5-flash-image')
    GEMINI_API_URL = os.getenv(
        'GEMINI_API_URL',
        f"https://generativelanguage.googleapis.com/v1beta/models/{GEMINI_MODEL}:generateContent"
    )
    GEMINI_TIMEOUT = int(os.getenv('GEMINI_TIMEOUT', 60))  # seconds
    GENERATION_WORKERS = int(os.getenv('GENERATION_WORKERS', 4))

    # Uploads
    MAX_FILE_SIZE = int(os.getenv('MAX_FILE_SIZE', 10 * 1024 * 1024))  # 10MB
    # Leave room for the other multipart fields
    MAX_CONTENT_LENGTH = MAX_FILE_SIZE + 1024 * 1024
    ALLOWED_FILE_TYPES = [
        t.strip() for t in os.getenv('ALLOWED_FILE_TYPES', 'image/jpeg,image/png,image/webp').split(',')
        if t.strip()
    ]
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'uploads')
    GENERATED_FOLDER = os.getenv('GENERATED_FOLDER', os.path.join('public', 'generated'))

    # Asset storage: 'local' or 's3'
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'local')
    AWS_S3_BUCKET = os.getenv('AWS_S3_BUCKET')
    AWS_REGION = os.getenv('AWS_REGION', 'ap-south-1')
    AWS_ACCESS_KEY_ID = os.getenv('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.getenv('AWS_SECRET_ACCESS_KEY')
    AWS_FOLDER_NAME = os.getenv('AWS_FOLDER_NAME', '')

    # Frontend origin, used for CORS and for contest share links
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')

    BRAND_NAME = os.getenv('BRAND_NAME', 'JK Lakshmi Cement')

    # Environment
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'
    PORT = int(os.getenv('PORT', 5000))
