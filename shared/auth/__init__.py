from .tokens import create_access_token, decode_access_token, get_current_user_id, websocket_user_id

__all__ = ["create_access_token", "decode_access_token", "get_current_user_id", "websocket_user_id"]
