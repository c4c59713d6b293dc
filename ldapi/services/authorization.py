import base64
import binascii
import enum
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from jose import JWTError, jwt

from ldapi.repositories.interfaces import IUserRepository
from ldapi.services.exceptions import ForbiddenError, MissingParameterError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """검증된 토큰으로부터 만든 요청 단위의 행위자. 요청이 끝나면 버려집니다."""
    login: str
    is_admin: bool


class AuthStatus(enum.Enum):
    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    BAD_REQUEST = "bad_request"


@dataclass(frozen=True)
class AuthDecision:
    status: AuthStatus
    principal: Optional[Principal] = None
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.status is AuthStatus.ALLOWED


def hash_password(password: str, salt: str) -> str:
    """Redmine 방식의 비밀번호 해시: sha1(salt + sha1(password))"""
    inner = hashlib.sha1(password.encode("utf-8")).hexdigest()
    return hashlib.sha1((salt + inner).encode("utf-8")).hexdigest()


class AuthorizationGate:
    """
    요청자의 토큰을 검증하고, 요청자가 대상 사용자를 대신해 행동할 수 있는지 판단합니다.

    판단 규칙: 요청자 본인이 대상 사용자이거나 관리자이면 허용합니다.
    상태를 변경하지 않으므로 한 요청 안에서 여러 번 호출해도 안전합니다.
    """

    def __init__(self, user_repo: IUserRepository, secret: str, algorithm: str = "HS256"):
        """
        AuthorizationGate를 초기화합니다.

        Args:
            user_repo: 토큰 주체의 관리자 여부를 확인하기 위한 사용자 리포지토리.
            secret: JWT 서명 검증용 비밀 키.
            algorithm: JWT 서명 알고리즘.
        """
        self.user_repo = user_repo
        self.secret = secret
        self.algorithm = algorithm

    def check(self, authorization: Optional[str], target_login: Optional[str], allow_basic_auth: bool = False) -> AuthDecision:
        """
        Authorization 헤더를 검증하고 대상 사용자에 대한 권한을 판단합니다.

        Args:
            authorization: 'Bearer <jwt>' 또는 'Basic <base64>' 형태의 헤더 값. 없을 수 있습니다.
            target_login: 요청이 "누구로서" 수행되는지를 나타내는 로그인 이름.
            allow_basic_auth: Basic 자격 증명 폴백을 허용할지 여부.

        Returns:
            ALLOWED / FORBIDDEN / UNAUTHORIZED / BAD_REQUEST 중 하나의 AuthDecision.
        """
        if not target_login:
            return AuthDecision(AuthStatus.BAD_REQUEST, message="Missing required parameter 'username'.")

        try:
            principal = self._authenticate(authorization, allow_basic_auth)
        except UnauthorizedError as e:
            return AuthDecision(AuthStatus.UNAUTHORIZED, message=str(e))

        if principal.login == target_login or principal.is_admin:
            return AuthDecision(AuthStatus.ALLOWED, principal=principal)

        logger.info("Principal '%s' may not act on behalf of '%s'", principal.login, target_login)
        return AuthDecision(
            AuthStatus.FORBIDDEN,
            principal=principal,
            message=f"User '{principal.login}' is not allowed to act on behalf of '{target_login}'.",
        )

    def require(self, authorization: Optional[str], target_login: Optional[str], allow_basic_auth: bool = False) -> Principal:
        """
        check()와 같지만, 허용되지 않으면 예외를 발생시킵니다.

        Raises:
            MissingParameterError: 대상 로그인이 없을 때.
            UnauthorizedError: 토큰이 없거나, 유효하지 않거나, 만료되었을 때.
            ForbiddenError: 본인도 관리자도 아닐 때.
        """
        decision = self.check(authorization, target_login, allow_basic_auth)
        if decision.status is AuthStatus.BAD_REQUEST:
            raise MissingParameterError(decision.message)
        if decision.status is AuthStatus.UNAUTHORIZED:
            raise UnauthorizedError(decision.message)
        if decision.status is AuthStatus.FORBIDDEN:
            raise ForbiddenError(decision.message)
        return decision.principal

    def _authenticate(self, authorization: Optional[str], allow_basic_auth: bool) -> Principal:
        if not authorization:
            raise UnauthorizedError("Missing 'Authorization' header.")

        scheme, _, credentials = authorization.strip().partition(" ")
        scheme = scheme.lower()
        credentials = credentials.strip()

        if scheme == "bearer" and credentials:
            login = self._verify_token(credentials)
        elif scheme == "basic" and allow_basic_auth and credentials:
            login = self._verify_basic(credentials)
        else:
            raise UnauthorizedError("Unsupported authorization scheme.")

        user = self.user_repo.find_by_login(login)
        if not user:
            raise UnauthorizedError(f"Token subject '{login}' does not exist.")
        return Principal(login=user.login, is_admin=bool(user.admin))

    def _verify_token(self, token: str) -> str:
        if not self.secret:
            raise UnauthorizedError("Token verification is not configured.")
        try:
            # 서명과 exp 클레임(만료)을 함께 검증합니다. exp가 없는 토큰은 거부합니다.
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm], options={"require_exp": True})
        except JWTError as e:
            raise UnauthorizedError(f"Invalid or expired token: {e}") from e

        login = claims.get("sub") or claims.get("user")
        if not login or not isinstance(login, str):
            raise UnauthorizedError("Token does not identify a user.")
        return login

    def _verify_basic(self, credentials: str) -> str:
        login, password = self._decode_basic(credentials)
        user = self.user_repo.find_by_login(login)
        if not user or not user.hashed_password:
            raise UnauthorizedError("Invalid username or password.")
        expected = hash_password(password, user.salt or "")
        if not hmac.compare_digest(expected, user.hashed_password):
            raise UnauthorizedError("Invalid username or password.")
        return login

    @staticmethod
    def _decode_basic(credentials: str) -> Tuple[str, str]:
        try:
            decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise UnauthorizedError("Malformed basic credentials.") from e
        login, sep, password = decoded.partition(":")
        if not sep or not login:
            raise UnauthorizedError("Malformed basic credentials.")
        return login, password
