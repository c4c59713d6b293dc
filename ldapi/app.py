# ldapi/app.py
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs
import json
import logging
import re
import sys

from ldapi.config import settings
from ldapi.database.database import SessionLocal, PrivateSessionLocal
from ldapi.repositories.sqlalchemy.sqlalchemy_project_repository import SqlalchemyProjectRepository
from ldapi.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from ldapi.repositories.sqlalchemy.sqlalchemy_membership_repository import SqlalchemyMembershipRepository
from ldapi.services.authorization import AuthorizationGate
from ldapi.services.membership_service import MembershipService, RequiresConfirmation
from ldapi.services.exceptions import *

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes")

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    """JSON 본문을 디코딩합니다. 본문은 객체뿐 아니라 문자열이나 숫자일 수도 있습니다."""
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        return json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else None
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid JSON body.")

def get_query_params(environ):
    return {k: v[-1] for k, v in parse_qs(environ.get("QUERY_STRING", "")).items()}

def is_flag_set(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES if value is not None else False

def is_confirmed(environ, data):
    if is_flag_set(environ['query'].get('confirmed')):
        return True
    return isinstance(data, dict) and is_flag_set(data.get('confirmed'))

def strip_confirmed(data):
    # confirmed 플래그는 역할 지정자가 아닙니다.
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if k != 'confirmed'}
    return data

def handle_exception(e):
    error_map = {
        UnauthorizedError: "401 Unauthorized",
        ForbiddenError: "403 Forbidden",
        ProjectNotFoundError: "404 Not Found",
        UserNotFoundError: "404 Not Found",
        MembershipNotFoundError: "404 Not Found",
        InvalidRoleError: "400 Bad Request",
        MissingParameterError: "400 Bad Request",
        ValueError: "400 Bad Request",
    }
    status = error_map.get(type(e))
    if status is None:
        logger.error("Unhandled error while processing request", exc_info=e)
        return "500 Internal Server Error", json.dumps({"status": "error", "message": "Internal Server Error"})
    return status, json.dumps({"status": "error", "message": str(e)})

def mutation_response(result):
    if isinstance(result, RequiresConfirmation):
        return '409 Conflict', json.dumps(result.to_payload())
    return '200 OK', json.dumps(result.to_dict())

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def create_application(public_sessions=None, private_sessions=None, jwt_secret=None, jwt_algorithm=None):
    """
    WSGI 애플리케이션을 생성합니다.

    Args:
        public_sessions: 기본 파티션의 세션 팩토리. 기본값은 SessionLocal.
        private_sessions: ?private=true 요청에 사용할 세션 팩토리. 기본값은 PrivateSessionLocal.
        jwt_secret: JWT 검증 키. 기본값은 설정값.
        jwt_algorithm: JWT 알고리즘. 기본값은 설정값.
    """
    public_sessions = public_sessions or SessionLocal
    private_sessions = private_sessions or PrivateSessionLocal
    secret = settings.jwt_secret if jwt_secret is None else jwt_secret
    algorithm = jwt_algorithm or settings.jwt_algorithm

    routes = [
        ('GET', r'^/api/projects/([^/]+)/user/([^/]+)$', get_member_handler),
        ('DELETE', r'^/api/projects/([^/]+)/user/([^/]+)$', remove_member_handler),
        ('POST', r'^/api/projects/([^/]+)/user/([^/]+)$', add_member_handler),
        ('GET', r'^/api/projects/([^/]+)/members$', list_members_handler),
        ('GET', r'^/api/users/([^/]+)/projects$', projects_for_user_handler),
        ('GET', r'^/api/roles$', list_roles_handler),
    ]

    def application(environ, start_response):
        environ['query'] = get_query_params(environ)
        private = is_flag_set(environ['query'].get('private'))
        db_session = (private_sessions if private else public_sessions)()
        try:
            # 1. 의존성 생성 (Repositories -> Services)
            project_repo = SqlalchemyProjectRepository(db_session)
            user_repo = SqlalchemyUserRepository(db_session)
            membership_repo = SqlalchemyMembershipRepository(db_session)

            gate = AuthorizationGate(user_repo, secret, algorithm)
            environ['services'] = {
                'membership': MembershipService(project_repo, user_repo, membership_repo, gate)
            }

            # 2. 라우팅 및 핸들러 실행
            path = environ.get("PATH_INFO", "")
            method = environ.get("REQUEST_METHOD", "")

            handler, path_args = None, []
            for route_method, pattern, route_handler in routes:
                if method == route_method and (match := re.match(pattern, path)):
                    handler, path_args = route_handler, match.groups()
                    break

            if handler:
                status, response_body = handler(environ, *path_args)
            else:
                status, response_body = '404 Not Found', json.dumps({"status": "error", "message": "Not Found"})

        except Exception as e:
            db_session.rollback()
            status, response_body = handle_exception(e)
        finally:
            db_session.close()

        start_response(status, [("Content-Type", "application/json")])
        return [response_body.encode("utf-8")]

    return application

# --------------------------------------------------------------------------
## 핸들러 함수
# --------------------------------------------------------------------------

def get_member_handler(environ, project_code, username):
    member = environ['services']['membership'].get_member(project_code, username)
    return '200 OK', json.dumps(member)

def remove_member_handler(environ, project_code, username):
    data = get_request_data(environ)
    result = environ['services']['membership'].remove_member(
        environ.get('HTTP_AUTHORIZATION'), project_code, username,
        role_spec=strip_confirmed(data), confirmed=is_confirmed(environ, data)
    )
    return mutation_response(result)

def add_member_handler(environ, project_code, username):
    data = get_request_data(environ)
    result = environ['services']['membership'].add_member(
        environ.get('HTTP_AUTHORIZATION'), project_code, username,
        role_spec=strip_confirmed(data), confirmed=is_confirmed(environ, data)
    )
    return mutation_response(result)

def list_members_handler(environ, project_code):
    members = environ['services']['membership'].list_members(project_code)
    return '200 OK', json.dumps(members)

def projects_for_user_handler(environ, username):
    projects = environ['services']['membership'].projects_for_user(environ.get('HTTP_AUTHORIZATION'), username)
    return '200 OK', json.dumps(projects)

def list_roles_handler(environ, *args):
    return '200 OK', json.dumps(environ['services']['membership'].list_roles())


application = create_application()

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

def main():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.jwt_secret:
        logger.warning("LDAPI_JWT_SECRET is not set; all bearer tokens will be rejected.")
    try:
        with make_server(settings.host, settings.port, application) as httpd:
            logger.info("Serving ldapi on %s:%d...", settings.host, settings.port)
            httpd.serve_forever()
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
