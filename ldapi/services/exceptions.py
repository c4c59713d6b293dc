# ldapi/services/exceptions.py

class LdapiError(Exception):
    """모든 서비스 예외의 기반 클래스"""
    pass

# --- Not Found Exceptions ---
class ProjectNotFoundError(LdapiError):
    """프로젝트를 찾을 수 없거나 보관(archive)된 프로젝트일 때"""
    pass

class UserNotFoundError(LdapiError):
    """사용자를 찾을 수 없을 때"""
    pass

class MembershipNotFoundError(LdapiError):
    """사용자가 해당 프로젝트의 멤버가 아닐 때"""
    pass

# --- Validation Exceptions ---
class InvalidRoleError(LdapiError):
    """역할 이름/ID를 해석할 수 없을 때"""
    pass

class MissingParameterError(LdapiError):
    """필수 파라미터가 누락되었을 때"""
    pass

# --- Auth Exceptions ---
class UnauthorizedError(LdapiError):
    """토큰이 없거나, 서명이 틀리거나, 만료되었을 때"""
    pass

class ForbiddenError(LdapiError):
    """유효한 토큰이지만 대상 사용자 본인도 관리자도 아닐 때"""
    pass

# --- Storage Exceptions ---
class StorageError(LdapiError):
    """저장소 오류. 트랜잭션은 롤백된 상태로 전달됩니다."""
    pass
