from repo_recon.auth.api_keys import find_api_key, generate_api_key
from repo_recon.auth.tokens import TokenError, decode_token, encode_token

__all__ = [
    "TokenError",
    "decode_token",
    "encode_token",
    "find_api_key",
    "generate_api_key",
]
