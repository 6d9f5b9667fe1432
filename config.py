import os

def _env(name, default, cast=str):
    value = os.environ.get(f"MORPH_{name}")
    return default if value is None else cast(value)

class Config:
    APP_ROOT = os.path.dirname(os.path.abspath(__file__))
    STATIC_DIR = os.path.join(APP_ROOT, "static")
    UPLOAD_DIR = _env("UPLOAD_DIR", os.path.join(STATIC_DIR, "uploads"))
    RESULT_DIR = _env("RESULT_DIR", os.path.join(STATIC_DIR, "results"))

    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB
    ALLOWED_EXTS = {"png", "jpg", "jpeg"}

    # filter defaults, overridable with MORPH_<NAME>
    GAUSSIAN_SIGMA = _env("GAUSSIAN_SIGMA", 1.4, float)
    GAUSSIAN_SIZE = _env("GAUSSIAN_SIZE", 5, int)
    SHARPEN_SIGMA = _env("SHARPEN_SIGMA", 1.4, float)
    SHARPEN_SIZE = _env("SHARPEN_SIZE", 5, int)

    LOG_LEVEL = _env("LOG_LEVEL", "INFO")
