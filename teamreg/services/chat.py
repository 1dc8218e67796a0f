"""
Chat relay for the support widget

Messages go to Gemini through its OpenAI-compatible endpoint. Without an API
key, or when the service fails, answers come from a keyword script.
The relay keeps no conversation state: callers resend the history each time.
"""
import logging
import re
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from teamreg.errors import ValidationError
from teamreg.models import ChatTurn


logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.7

SYSTEM_PROMPT = """You are TeamReg Assistant, a helpful and friendly AI chatbot for a team registration platform. Your role is to assist users with:

1. Team registration process
2. ID card verification questions
3. Technical support
4. General platform inquiries

Platform Information:
- Users can register teams with a unique Team ID (format: TEAM-XXXX-XXXX)
- Registration requires: team name, leader info, team members, and ID card upload
- Accepted ID formats: JPEG, PNG, WebP, PDF (max 10MB)
- Registration is FREE
- Confirmation email is sent automatically after registration
- reCAPTCHA verification is required to prevent bots
- Teams can have 1-10 members

Guidelines:
- Be friendly, helpful, and concise
- Use emojis sparingly
- Format responses with bullet points or numbered lists when appropriate
- If you don't know something specific about the platform, provide general helpful guidance
- Keep responses under 200 words unless detailed explanation is needed

Stay focused on registration-related topics."""

FALLBACK_RESPONSES = {
    "register": (
        "To register your team:\n\n"
        "1️⃣ Click 'Start Registration'\n"
        "2️⃣ Complete the reCAPTCHA verification\n"
        "3️⃣ Enter your team details\n"
        "4️⃣ Add team members\n"
        "5️⃣ Upload your ID card\n\n"
        "You'll receive a confirmation email with your unique Team ID!"
    ),
    "id": (
        "For ID verification, you can upload:\n\n"
        "📄 Government-issued ID\n"
        "📄 Driver's license\n"
        "📄 Passport\n"
        "📄 Student ID\n\n"
        "Accepted formats: JPEG, PNG, WebP, PDF (max 10MB)"
    ),
    "help": (
        "I can help you with:\n\n"
        "🔹 Registration process\n"
        "🔹 ID verification\n"
        "🔹 Team management\n"
        "🔹 Email confirmation\n"
        "🔹 Technical issues\n\n"
        "Just ask your question!"
    ),
    "greeting": "Hello! 👋 I'm TeamReg Assistant. How can I help you with your team registration today?",
    "thanks": "You're welcome! 😊 Is there anything else I can help you with?",
    "default": (
        "I'm here to help with your team registration! You can ask me about:\n\n"
        "• How to register\n"
        "• ID verification\n"
        "• Team members\n"
        "• Email confirmation\n\n"
        "What would you like to know?"
    ),
}

GREETING_PATTERN = re.compile(r"^(hi|hello|hey)")
THANKS_PATTERN = re.compile(r"(thank|thanks)")


def fallback_reply(message: str) -> str:
    """Deterministic keyword answer, checked in priority order"""
    lower = message.lower()

    if "register" in lower or "sign up" in lower:
        return FALLBACK_RESPONSES["register"]
    if "id" in lower or "document" in lower or "upload" in lower:
        return FALLBACK_RESPONSES["id"]
    if "help" in lower:
        return FALLBACK_RESPONSES["help"]
    if GREETING_PATTERN.search(lower):
        return FALLBACK_RESPONSES["greeting"]
    if THANKS_PATTERN.search(lower):
        return FALLBACK_RESPONSES["thanks"]

    return FALLBACK_RESPONSES["default"]


def build_messages(message: str, history: Sequence[ChatTurn]) -> List[dict]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for turn in history:
        role = "assistant" if turn.role == "model" else "user"
        messages.append({"role": role, "content": turn.text})
    messages.append({"role": "user", "content": message})
    return messages


class ChatRelay:
    """
    Forward chat messages to the generative service

    Args:
        api_key: Gemini API key; None selects the scripted responder
        model: Model name on the OpenAI-compatible endpoint
        base_url: Endpoint root
        client: Pre-built AsyncOpenAI client (tests inject fakes here)
    """

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.0-flash",
                 base_url: Optional[str] = None, client=None):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
            logger.info(f"✅ Chat relay initialized with model {model}")
        elif self.client is None:
            logger.warning("⚠️ GEMINI_API_KEY not set. Chatbot will use fallback responses.")

    @property
    def scripted(self) -> bool:
        return self.client is None

    async def reply(self, message: Optional[str], history: Optional[Sequence[ChatTurn]] = None) -> str:
        """
        Answer a chat message

        Args:
            message: The user's new message
            history: Prior turns, oldest first

        Returns:
            Text answer from the service, or the scripted answer

        Raises:
            ValidationError: message is missing or blank
        """
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required")

        if self.scripted:
            return fallback_reply(message)

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(message, history or []),
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=TEMPERATURE,
            )
            text = completion.choices[0].message.content
        except Exception as e:
            logger.error(f"❌ Gemini API error: {type(e).__name__}: {e}")
            return fallback_reply(message)

        if not text:
            logger.warning("⚠️ Gemini returned an empty answer, using fallback")
            return fallback_reply(message)
        return text

    async def close(self) -> None:
        if self.client is not None and hasattr(self.client, "close"):
            await self.client.close()
