# services/auth_service.py

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import aiohttp

from models.user import UserData
from services.project_service import ProjectService
from services.user_data_service import UserDataService
from utils.datetime_utils import now_utc
from utils.validators import is_valid_email, is_valid_password

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://identitytoolkit.googleapis.com/v1"

# ===== СООБЩЕНИЯ ДЛЯ ПОЛЬЗОВАТЕЛЯ =====

INVALID_CREDENTIALS = "Неверный email или пароль"
INVALID_EMAIL = "Некорректный формат email"
WEAK_PASSWORD = "Слишком простой пароль (минимум {min_length} символов)"
EMAIL_EXISTS = "Аккаунт с таким email уже существует"
GENERIC_ERROR = "Произошла ошибка, попробуйте ещё раз"
NETWORK_ERROR = "Нет соединения с сервером"

class AuthError(Exception):
    """Ошибка аутентификации с сообщением, которое можно показать пользователю"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

@dataclass
class AuthResult:
    user_id: str
    email: str
    id_token: str
    refresh_token: str
    expires_at: datetime

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "AuthResult":
        return cls(
            user_id=data['localId'],
            email=data.get('email', ''),
            id_token=data.get('idToken', ''),
            refresh_token=data.get('refreshToken', ''),
            expires_at=now_utc() + timedelta(seconds=int(data.get('expiresIn', 3600)))
        )

def error_code(payload: Dict[str, Any]) -> str:
    """Код ошибки провайдера: "WEAK_PASSWORD : ..." -> "WEAK_PASSWORD\""""
    message = (payload.get('error') or {}).get('message') or ""
    return message.split(":")[0].strip()

class AuthService:
    """Регистрация и вход по email и паролю через REST API провайдера"""

    def __init__(self, api_key: Optional[str], base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0,
                 min_password_length: int = 6, session: Optional[aiohttp.ClientSession] = None,
                 user_data: Optional[UserDataService] = None, projects: Optional[ProjectService] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.min_password_length = min_password_length
        self.user_data = user_data
        self.projects = projects
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthError(GENERIC_ERROR, "MISSING_API_KEY")

        session = await self._get_session()
        url = f"{self.base_url}/accounts:{endpoint}"
        try:
            async with session.post(url, params={'key': self.api_key}, json=payload,
                                    timeout=self.timeout) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    logger.error(f"❌ {endpoint}: ответ провайдера не JSON ({response.status})")
                    raise AuthError(GENERIC_ERROR, "INVALID_RESPONSE") from e
                if response.status != 200:
                    code = error_code(data or {})
                    logger.warning(f"⚠️ {endpoint}: провайдер вернул {response.status} {code}")
                    raise AuthError(GENERIC_ERROR, code)
                return data
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"❌ {endpoint}: ошибка соединения: {e}")
            raise AuthError(NETWORK_ERROR, "NETWORK_ERROR") from e

    def _credentials(self, email: str, password: str) -> Dict[str, Any]:
        return {'email': email.strip(), 'password': password, 'returnSecureToken': True}

    async def sign_up(self, email: str, password: str) -> AuthResult:
        if not is_valid_email(email.strip()):
            raise AuthError(INVALID_EMAIL, "INVALID_EMAIL")
        if not is_valid_password(password, self.min_password_length):
            raise AuthError(WEAK_PASSWORD.format(min_length=self.min_password_length), "WEAK_PASSWORD")

        try:
            data = await self._post("signUp", self._credentials(email, password))
        except AuthError as e:
            if e.code == "WEAK_PASSWORD":
                raise AuthError(WEAK_PASSWORD.format(min_length=self.min_password_length), e.code) from e
            if e.code == "EMAIL_EXISTS":
                raise AuthError(EMAIL_EXISTS, e.code) from e
            if e.code == "INVALID_EMAIL":
                raise AuthError(INVALID_EMAIL, e.code) from e
            raise

        result = AuthResult.from_response(data)
        logger.info(f"✅ Зарегистрирован пользователь {result.user_id}")
        return result

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Вход; все ошибки учётных данных дают одно и то же сообщение"""
        try:
            data = await self._post("signInWithPassword", self._credentials(email, password))
        except AuthError as e:
            if e.code in ("NETWORK_ERROR", "INVALID_RESPONSE"):
                raise
            raise AuthError(INVALID_CREDENTIALS, e.code) from e

        result = AuthResult.from_response(data)
        logger.info(f"🔑 Вход пользователя {result.user_id}")
        return result

    async def create_account(self, email: str, password: str, full_name: str,
                             username: Optional[str] = None, birthday: Optional[datetime] = None,
                             gender: Optional[str] = None,
                             question_answers: Optional[Dict[str, str]] = None) -> AuthResult:
        """Регистрация, документ пользователя и проект по умолчанию"""
        try:
            result = await self.sign_up(email, password)
            user = UserData.new_user(
                email=result.email or email.strip(),
                full_name=full_name,
                user_id=result.user_id,
                username=username,
                birthday=birthday,
                gender=gender,
                question_answers=question_answers
            )
            if self.user_data is not None:
                await self.user_data.save_user_data(result.user_id, user)
            if self.projects is not None:
                await self.projects.initialize_default_project(result.user_id)

            logger.info(f"🎉 Аккаунт {result.user_id} создан")
            return result
        except Exception as e:
            logger.error(f"❌ Ошибка создания аккаунта: {e}")
            raise

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
