"""Chat widget endpoint"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from teamreg.errors import RegistrationError
from teamreg.models import ChatRequest, utcnow
from teamreg.services.chat import ChatRelay
from teamreg.state import get_chat_relay


router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post("/chat")
async def chat(payload: ChatRequest, relay: ChatRelay = Depends(get_chat_relay)):
    """
    Request:
        {"message": "How do I register?", "history": [{"role": "user", "text": "..."}]}
    """
    try:
        answer = await relay.reply(payload.message, payload.history)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except Exception as e:
        logger.error(f"❌ Chat error: {type(e).__name__}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get chat response") from e

    return {
        "success": True,
        "data": {
            "message": answer,
            "timestamp": utcnow().isoformat(),
        },
    }
