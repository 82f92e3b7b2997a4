import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from benedict_cafe.errors import AIConfigurationError


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful restaurant customer service assistant for {cafe_name}.
Answer briefly and politely, in the language the guest writes in.
Use emoji sparingly."""

CHAT_MAX_TOKENS = 1000


@dataclass
class ChatSession:
    session_id: str
    history: List[Dict[str, str]] = field(default_factory=list)


class AIService:
    """Thin wrapper over an OpenAI-compatible chat completions API.

    Without an API key the service is unconfigured and every provider call
    raises AIConfigurationError before touching the network. Provider errors
    are passed through as-is.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        base_url: Optional[str] = None,
        cafe_name: str = "Benedict Cafe",
        client: Optional[Any] = None,
    ):
        self.model = model
        self.cafe_name = cafe_name
        self.chat_sessions: Dict[str, ChatSession] = {}

        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        else:
            logger.warning("AI API key not configured")
            self.client = None

    def is_configured(self) -> bool:
        return self.client is not None

    def _require_configured(self):
        if not self.is_configured():
            raise AIConfigurationError()

    async def _complete(self, messages: List[Dict[str, str]], **kwargs) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def generate_text(self, prompt: str) -> str:
        self._require_configured()
        try:
            return await self._complete([{"role": "user", "content": prompt}])
        except Exception as e:
            logger.error(f"AI generation error: {e}")
            raise

    def start_chat(self, session_id: str, history: Optional[List[Dict[str, str]]] = None) -> ChatSession:
        """Start (or replace) the chat session for session_id."""
        self._require_configured()
        session = ChatSession(session_id=session_id, history=list(history or []))
        self.chat_sessions[session_id] = session
        return session

    async def send_chat_message(self, session_id: str, message: str) -> str:
        self._require_configured()
        session = self.chat_sessions.get(session_id)
        if session is None:
            session = self.start_chat(session_id)

        system = {"role": "system", "content": SYSTEM_PROMPT.format(cafe_name=self.cafe_name)}
        user_message = {"role": "user", "content": message}
        try:
            reply = await self._complete(
                [system, *session.history, user_message],
                max_tokens=CHAT_MAX_TOKENS,
            )
        except Exception as e:
            logger.error(f"Chat message error: {e}")
            raise

        session.history.append(user_message)
        session.history.append({"role": "assistant", "content": reply})
        return reply

    def end_chat(self, session_id: str):
        self.chat_sessions.pop(session_id, None)

    async def generate_menu_recommendations(self, user_preferences: Any, menu_items: Any) -> str:
        prompt = (
            f"Based on the following user preferences: {json.dumps(user_preferences, ensure_ascii=False, default=str)}, "
            f"recommend 3 menu items from this list: {json.dumps(menu_items, ensure_ascii=False, default=str)}. "
            "Provide a brief explanation for each recommendation."
        )
        return await self.generate_text(prompt)

    async def generate_reward_suggestions(self, user_history: Any, available_rewards: Any) -> str:
        prompt = (
            f"Based on user order history: {json.dumps(user_history, ensure_ascii=False, default=str)}, "
            f"suggest the most relevant rewards from: {json.dumps(available_rewards, ensure_ascii=False, default=str)}. "
            "Explain why each reward would be valuable to this user."
        )
        return await self.generate_text(prompt)

    async def generate_customer_service_response(self, customer_query: str, context: Optional[Dict[str, Any]] = None) -> str:
        prompt = (
            f"You are a helpful restaurant customer service assistant for {self.cafe_name}. "
            f'Customer query: "{customer_query}"\n'
            f"Context: {json.dumps(context or {}, ensure_ascii=False, default=str)}\n"
            "Provide a helpful, friendly, and professional response."
        )
        return await self.generate_text(prompt)

    async def analyze_order_patterns(self, order_history: Any) -> str:
        prompt = (
            f"Analyze these order patterns: {json.dumps(order_history, ensure_ascii=False, default=str)}\n"
            "Provide insights about:\n"
            "1. Most frequently ordered items\n"
            "2. Preferred ordering times\n"
            "3. Average order value trends\n"
            "4. Recommendations for loyalty rewards"
        )
        return await self.generate_text(prompt)

    async def generate_promotional_content(self, product_info: Any, target_audience: str) -> str:
        prompt = (
            f"Create engaging promotional content for: {json.dumps(product_info, ensure_ascii=False, default=str)}\n"
            f"Target audience: {target_audience}\n"
            "Include: catchy headline, description, and call-to-action."
        )
        return await self.generate_text(prompt)
