"""FastAPI application exposing registration, users and private messages."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from .access import MessageAccessControl
from .auth import AuthenticationService
from .config import Settings, load_settings
from .database import Database
from .errors import DuplicateKeyError, ForbiddenError, NotFoundError, UnauthorizedError
from .messages import MessageStore
from .models import Message, MessageDetail, UserIdentity, UserSummary
from .passwords import CredentialHasher
from .security import BearerTokenAuth
from .tokens import TokenIssuer
from .users import UserDirectory

logger = logging.getLogger("messagely.api")


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=32)

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("username must not be empty")
        return stripped

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _strip_profile_field(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("value must not be blank")
        return stripped


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=255)


class TokenResponse(BaseModel):
    token: str


class UserResponse(BaseModel):
    username: str
    first_name: str
    last_name: str
    phone: str
    joined_at: datetime
    last_login_at: Optional[datetime]


class RegisterResponse(BaseModel):
    token: str
    user: UserResponse


class UserDetailResponse(BaseModel):
    user: UserResponse


class UserListEntry(BaseModel):
    username: str
    first_name: str
    last_name: str


class UserListResponse(BaseModel):
    users: List[UserListEntry]


class ParticipantResponse(BaseModel):
    username: str
    first_name: str
    last_name: str
    phone: str


class ReceivedMessageResponse(BaseModel):
    id: int
    body: str
    sent_at: datetime
    read_at: Optional[datetime]
    from_user: ParticipantResponse


class SentMessageResponse(BaseModel):
    id: int
    body: str
    sent_at: datetime
    read_at: Optional[datetime]
    to_user: ParticipantResponse


class ReceivedMessageListResponse(BaseModel):
    messages: List[ReceivedMessageResponse]


class SentMessageListResponse(BaseModel):
    messages: List[SentMessageResponse]


class CreateMessageRequest(BaseModel):
    to_username: str = Field(..., min_length=1, max_length=64)
    body: str = Field(..., min_length=1, max_length=10_000)


class CreatedMessage(BaseModel):
    id: int
    from_username: str
    to_username: str
    body: str
    sent_at: datetime


class CreatedMessageResponse(BaseModel):
    message: CreatedMessage


class MessageView(BaseModel):
    id: int
    body: str
    sent_at: datetime
    read_at: Optional[datetime]
    from_user: ParticipantResponse
    to_user: ParticipantResponse


class MessageViewResponse(BaseModel):
    message: MessageView


class ReadReceipt(BaseModel):
    id: int
    read_at: Optional[datetime]


class ReadReceiptResponse(BaseModel):
    message: ReadReceipt


def user_to_response(user: UserIdentity) -> UserResponse:
    return UserResponse(
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        joined_at=user.joined_at,
        last_login_at=user.last_login_at,
    )


def participant_to_response(summary: UserSummary) -> ParticipantResponse:
    return ParticipantResponse(
        username=summary.username,
        first_name=summary.first_name,
        last_name=summary.last_name,
        phone=summary.phone,
    )


def detail_to_view(detail: MessageDetail) -> MessageView:
    message = detail.message
    return MessageView(
        id=message.id,
        body=message.body,
        sent_at=message.sent_at,
        read_at=message.read_at,
        from_user=participant_to_response(detail.from_user),
        to_user=participant_to_response(detail.to_user),
    )


def message_to_created(message: Message) -> CreatedMessage:
    return CreatedMessage(
        id=message.id,
        from_username=message.from_username,
        to_username=message.to_username,
        body=message.body,
        sent_at=message.sent_at,
    )


def build_hasher(settings: Settings) -> CredentialHasher:
    return CredentialHasher(work_factor=settings.bcrypt_work_factor, scheme=settings.password_scheme)


def build_token_issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings.secret_key, lifetime=settings.token_lifetime)


def create_app(
    *,
    settings: Settings | None = None,
    database: Database | None = None,
    hasher: CredentialHasher | None = None,
    tokens: TokenIssuer | None = None,
) -> FastAPI:
    """Instantiate the messaging API.

    Collaborators not passed in are built from ``settings`` (loaded from the
    environment when omitted).
    """

    if settings is None:
        settings = load_settings()
    if database is None:
        database = Database(settings.database_path)
    database.initialize()
    if hasher is None:
        hasher = build_hasher(settings)
    if tokens is None:
        tokens = build_token_issuer(settings)

    users = UserDirectory(database)
    messages = MessageStore(database)
    auth_service = AuthenticationService(users, hasher, tokens)
    access = MessageAccessControl(messages)
    current_user = BearerTokenAuth(auth_service).current_username

    app = FastAPI(
        title="Messagely",
        description="Private messages between registered users",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.database = database
    app.state.users = users
    app.state.messages = messages
    app.state.auth = auth_service
    app.state.access = access

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/auth/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
    def register(payload: RegisterRequest) -> RegisterResponse:
        try:
            identity = auth_service.register(
                payload.username,
                payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
                phone=payload.phone,
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

        token = auth_service.issue_token(identity.username)
        return RegisterResponse(token=token.value, user=user_to_response(users.get(identity.username)))

    @app.post("/auth/login", response_model=TokenResponse)
    def login(payload: LoginRequest) -> TokenResponse:
        token = auth_service.login(payload.username, payload.password)
        return TokenResponse(token=token.value)

    @app.get("/users", response_model=UserListResponse)
    def list_users(current_username: str = Depends(current_user)) -> UserListResponse:
        return UserListResponse(
            users=[
                UserListEntry(username=entry.username, first_name=entry.first_name, last_name=entry.last_name)
                for entry in users.list_all()
            ]
        )

    @app.get("/users/{username}", response_model=UserDetailResponse)
    def read_user(username: str, current_username: str = Depends(current_user)) -> UserDetailResponse:
        access.authorize_profile(username, current_username)
        return UserDetailResponse(user=user_to_response(users.get(username)))

    @app.get("/users/{username}/to", response_model=ReceivedMessageListResponse)
    def messages_to(username: str, current_username: str = Depends(current_user)) -> ReceivedMessageListResponse:
        access.authorize_profile(username, current_username)
        return ReceivedMessageListResponse(
            messages=[
                ReceivedMessageResponse(
                    id=detail.message.id,
                    body=detail.message.body,
                    sent_at=detail.message.sent_at,
                    read_at=detail.message.read_at,
                    from_user=participant_to_response(detail.from_user),
                )
                for detail in messages.list_received_by(username)
            ]
        )

    @app.get("/users/{username}/from", response_model=SentMessageListResponse)
    def messages_from(username: str, current_username: str = Depends(current_user)) -> SentMessageListResponse:
        access.authorize_profile(username, current_username)
        return SentMessageListResponse(
            messages=[
                SentMessageResponse(
                    id=detail.message.id,
                    body=detail.message.body,
                    sent_at=detail.message.sent_at,
                    read_at=detail.message.read_at,
                    to_user=participant_to_response(detail.to_user),
                )
                for detail in messages.list_sent_by(username)
            ]
        )

    @app.post("/messages", status_code=status.HTTP_201_CREATED, response_model=CreatedMessageResponse)
    def send_message(payload: CreateMessageRequest, username: str = Depends(current_user)) -> CreatedMessageResponse:
        try:
            message = messages.create(username, payload.to_username.strip(), payload.body)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        logger.info("User %s sent message %s to %s", username, message.id, message.to_username)
        return CreatedMessageResponse(message=message_to_created(message))

    @app.get("/messages/{message_id}", response_model=MessageViewResponse)
    def read_message(message_id: int, username: str = Depends(current_user)) -> MessageViewResponse:
        return MessageViewResponse(message=detail_to_view(access.view(message_id, username)))

    @app.post("/messages/{message_id}/read", response_model=ReadReceiptResponse)
    def mark_message_read(message_id: int, username: str = Depends(current_user)) -> ReadReceiptResponse:
        message = access.mark_read(message_id, username)
        return ReadReceiptResponse(message=ReadReceipt(id=message.id, read_at=message.read_at))

    @app.exception_handler(DuplicateKeyError)
    async def handle_duplicate_key(_: Request, exc: DuplicateKeyError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(_: Request, exc: UnauthorizedError):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(_: Request, exc: ForbiddenError):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})

    return app


__all__ = ["build_hasher", "build_token_issuer", "create_app"]
