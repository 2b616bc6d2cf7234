from edu_access.infrastructure.security.jwt import (create_access_token,
                                                   verify_token)

__all__ = ["create_access_token", "verify_token"]
