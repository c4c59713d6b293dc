"""
멤버 추가 폼의 상태와 검증.

폼 상태는 불변 값이며 update 주기마다 새 값으로 교체됩니다. 각 필드는 순수 검증 함수를 가집니다.
"""
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

from ldapi.services.roles import Unrecognized, parse_role_specifier
from ldapi.utils.validators import validate_project_code

Validator = Callable[[str], Optional[str]]


def validate_username(value: str) -> Optional[str]:
    if not value.strip():
        return "You must specify a username"
    return None


def validate_role(value: str) -> Optional[str]:
    # 비어 있으면 서버 기본 역할(Contributor)이 적용됩니다.
    if isinstance(parse_role_specifier(value.strip()), Unrecognized):
        return f"Unknown role '{value}'"
    return None


FIELD_VALIDATORS: Dict[str, Validator] = {
    "project": validate_project_code,
    "username": validate_username,
    "role": validate_role,
}


@dataclass(frozen=True)
class FieldState:
    name: str
    value: str = ""
    error: Optional[str] = None
    touched: bool = False


@dataclass(frozen=True)
class FormState:
    fields: Tuple[FieldState, ...] = tuple(FieldState(name) for name in FIELD_VALIDATORS)

    def field(self, name: str) -> FieldState:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    @property
    def is_valid(self) -> bool:
        return all(f.error is None for f in self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: {"value": f.value, "error": f.error, "touched": f.touched} for f in self.fields}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormState":
        return cls(tuple(
            FieldState(name, data[name]["value"], data[name]["error"], data[name]["touched"])
            for name in FIELD_VALIDATORS if name in data
        ))


def validate_field(field: FieldState) -> FieldState:
    return replace(field, error=FIELD_VALIDATORS[field.name](field.value))


def set_field(state: FormState, name: str, value: str) -> FormState:
    """필드 값을 바꾸고 해당 필드만 다시 검증한 새 상태를 반환합니다."""
    state.field(name)
    return FormState(tuple(
        validate_field(replace(f, value=value, touched=True)) if f.name == name else f
        for f in state.fields
    ))


def validate_form(state: FormState) -> FormState:
    """제출 직전에 모든 필드를 검증합니다."""
    return FormState(tuple(validate_field(replace(f, touched=True)) for f in state.fields))


def to_request(state: FormState) -> Tuple[str, str, Optional[str]]:
    """유효한 폼을 (project, username, role) 요청 인자로 변환합니다."""
    if not state.is_valid:
        raise ValueError("Form is not valid.")
    role = state.field("role").value.strip() or None
    return state.field("project").value, state.field("username").value.strip(), role
