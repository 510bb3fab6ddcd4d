from cryptography.fernet import Fernet, InvalidToken

from .config import get_settings


class TokenEncryptionError(Exception):
    """Raised when token encryption or decryption fails"""
    pass


def _get_fernet() -> Fernet:
    settings = get_settings()
    if not settings.fernet_key:
        raise TokenEncryptionError("FERNET_KEY not configured")
    return Fernet(settings.fernet_key.encode())


def encrypt_token(token: str) -> str:
    """Encrypts an OAuth token for database storage"""
    try:
        fernet = _get_fernet()
        return fernet.encrypt(token.encode()).decode()
    except TokenEncryptionError:
        raise
    except Exception as e:
        raise TokenEncryptionError(f"Failed to encrypt token: {e}")


def decrypt_token(encrypted_token: str) -> str:
    try:
        fernet = _get_fernet()
        return fernet.decrypt(encrypted_token.encode()).decode()
    except InvalidToken:
        raise TokenEncryptionError("Token decryption failed; key may have rotated")
    except TokenEncryptionError:
        raise
    except Exception as e:
        raise TokenEncryptionError(f"Failed to decrypt token: {e}")
