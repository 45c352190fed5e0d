"""One-time passcode hashing, reset session tokens and password hashing."""

import hashlib
import hmac
import secrets

from passlib.context import CryptContext

OTP_LENGTH = 6
OTP_HASH_BYTES = 64
OTP_SALT_BYTES = 16

# scrypt cost parameters; N * r * 128 bytes of memory per hash (16 MiB)
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def generate_otp_code(length: int = OTP_LENGTH) -> str:
    """Uniform numeric code, left-zero-padded (``000000``..``999999`` by default)."""
    return str(secrets.randbelow(10**length)).zfill(length)


def generate_otp_salt() -> str:
    return secrets.token_hex(OTP_SALT_BYTES)


def _scrypt(code: str, salt: str, length: int) -> bytes:
    return hashlib.scrypt(
        code.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=length,
    )


def hash_otp_code(code: str, salt: str, length: int = OTP_HASH_BYTES) -> str:
    """Slow salted hash of a code, hex encoded. The raw code is never stored."""
    return _scrypt(code, salt, length).hex()


def verify_otp_code(code: str, salt: str, expected_hash: str) -> bool:
    """Recompute with the stored salt and compare in constant time."""
    try:
        expected = bytes.fromhex(expected_hash)
    except ValueError:
        return False
    if not expected:
        return False
    candidate = _scrypt(code, salt, len(expected))
    return len(candidate) == len(expected) and hmac.compare_digest(candidate, expected)


def issue_otp(length: int = OTP_LENGTH) -> tuple[str, str, str]:
    """Return (code, salt, code_hash) for a new challenge."""
    code = generate_otp_code(length)
    salt = generate_otp_salt()
    return code, salt, hash_otp_code(code, salt)


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)
