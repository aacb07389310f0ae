"""Account registration, login and bearer-token handling."""

import uuid
from datetime import timedelta

import bcrypt
import structlog
from jose import JWTError, jwt

from campus_hub.config import Settings
from campus_hub.entities import Faculty, Principal, Role, User
from campus_hub.errors import AuthenticationError, ConflictError, ValidationError
from campus_hub.protocols import CampusStore, Clock, SystemClock

logger = structlog.get_logger(__name__)


class AuthService:
    """Issues and verifies HS256 bearer tokens and owns the account lifecycle.

    Token verification never raises: an absent, malformed or expired token
    simply yields no principal, and resolvers decide what that means.
    """

    def __init__(
        self,
        store: CampusStore,
        secret: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(hours=24),
        bcrypt_rounds: int = 12,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._secret = secret
        self._algorithm = algorithm
        self._token_ttl = token_ttl
        self._bcrypt_rounds = bcrypt_rounds
        self._clock = clock or SystemClock()

    @classmethod
    def create(cls, store: CampusStore, settings: Settings, clock: Clock | None = None) -> "AuthService":
        """Factory method to create AuthService from settings."""
        return cls(
            store=store,
            secret=settings.signing_secret,
            algorithm=settings.jwt_algorithm,
            token_ttl=timedelta(hours=settings.token_expiry_hours),
            bcrypt_rounds=settings.bcrypt_rounds,
            clock=clock,
        )

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    def issue_token(self, user: User) -> str:
        """Sign a bearer token for ``user``."""
        issued_at = self._clock.now()
        claims = {
            "sub": user.id,
            "email": user.email,
            "role": user.role.value,
            "iat": issued_at,
            "exp": issued_at + self._token_ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode_token(self, token: str) -> Principal | None:
        """Verify a bearer token.

        Returns:
            The principal, or None if the token is invalid or expired
        """
        if not token:
            return None
        try:
            # Expiry is checked against the injected clock, not the library's wall clock.
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
            if claims["exp"] <= self._clock.now().timestamp():
                raise JWTError("Signature has expired.")
            return Principal(id=claims["sub"], email=claims["email"], role=Role(claims["role"]))
        except (JWTError, KeyError, ValueError) as e:
            logger.warning("token_verify_failed", error=str(e))
            return None

    def principal_from_authorization(self, value: str | None) -> Principal | None:
        """Resolve an ``Authorization`` value ("Bearer <token>") to a principal."""
        if not value:
            return None
        parts = value.split(" ")
        if len(parts) < 2:
            return None
        return self.decode_token(parts[1])

    def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Role = Role.STUDENT,
        department: str | None = None,
        enrollment_no: str | None = None,
        designation: str | None = None,
    ) -> tuple[str, User]:
        """Create an account and return a fresh token for it.

        Faculty accounts also get a faculty profile with default availability.

        Raises:
            ValidationError: On missing fields, short passwords or admin sign-up
            ConflictError: If the email is already registered
        """
        name = name.strip()
        email = email.strip().lower()
        if not name:
            raise ValidationError("Name is required")
        if "@" not in email:
            raise ValidationError(f"Invalid email address {email!r}")
        if len(password) < 8:
            raise ValidationError("Password must be at least 8 characters")
        if role is Role.ADMIN:
            raise ValidationError("Admin accounts cannot be self-registered")
        if self._store.get_user_by_email(email) is not None:
            raise ConflictError(f"Email {email} is already registered")

        user = User(
            id=uuid.uuid4().hex,
            name=name,
            email=email,
            role=role,
            password_hash=self.hash_password(password),
            created_at=self._clock.now(),
            department=department,
            enrollment_no=enrollment_no if role is Role.STUDENT else None,
            designation=designation if role is Role.FACULTY else None,
        )
        self._store.save_user(user)

        if role is Role.FACULTY:
            self._store.save_faculty(
                Faculty(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    department=department,
                    designation=designation,
                )
            )

        logger.info("user_registered", user_id=user.id, role=role.value)
        return self.issue_token(user), user

    def login(self, email: str, password: str) -> tuple[str, User]:
        """Check credentials and return a fresh token.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        user = self._store.get_user_by_email(email.strip().lower())
        if user is None or not self.verify_password(password, user.password_hash):
            logger.info("login_failed", email=email)
            raise AuthenticationError("Invalid email or password")
        return self.issue_token(user), user

    def get_user(self, user_id: str) -> User | None:
        return self._store.get_user(user_id)
