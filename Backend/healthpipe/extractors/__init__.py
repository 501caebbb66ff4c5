from .apple_health import extract_apple_health_file
from .delimited import detect_delimiter, extract_delimited_file
from .json_doc import extract_json_file

__all__ = [
    "detect_delimiter",
    "extract_apple_health_file",
    "extract_delimited_file",
    "extract_json_file",
]
