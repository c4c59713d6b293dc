import re
from typing import Optional

PROJECT_CODE_PATTERN = re.compile(r"^[a-z0-9_-]+$")


def validate_project_code(value: str) -> Optional[str]:
    """
    프로젝트 코드를 검사합니다.

    Returns:
        유효하면 None, 아니면 사용자에게 보여줄 오류 메시지.
    """
    if not value:
        return "You must specify a project code"
    if value != value.lower():
        return "Project codes must be in lowercase letters"
    if not PROJECT_CODE_PATTERN.match(value):
        return "Project codes must contain only letters, digits, hyphens, and underscores"
    return None


def is_valid_project_code(value: str) -> bool:
    return validate_project_code(value) is None
