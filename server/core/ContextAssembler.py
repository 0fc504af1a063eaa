from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import Bot, ChatMessage


class ContextAssembler:
    """Builds the ordered message list for a completion call.

    Layout: one system entry (persona + optional retrieved context), then the
    conversation history oldest first, then the current user message.
    """

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        # None means the whole history is sent
        self.history_max_chars = helper_config.get_optional_number_val("CHAT_HISTORY_MAX_CHARS")

    def build_system_prompt(self, bot: Bot, retrieved_context: str = "") -> str:
        return f"You are {bot.name}. {bot.description}\n\n{bot.initial_context}{retrieved_context or ''}"

    def assemble(
        self,
        bot: Bot,
        history: list[ChatMessage],
        current_message: str | None,
        retrieved_context: str = "",
    ) -> list[dict]:
        """Assemble the messages for one turn.

        Args:
            bot (Bot): The bot whose persona becomes the system entry.
            history (list[ChatMessage]): Prior messages of the conversation, oldest first.
            current_message (str | None): The message of this turn.
            retrieved_context (str): Context block from retrieval, "" if none.

        Returns:
            list[dict]: OpenAI-format messages.
        """
        messages: list[dict] = [{"role": "system", "content": self.build_system_prompt(bot, retrieved_context)}]
        for entry in self._apply_budget(history):
            messages.append({
                "role": "user" if entry.is_user else "assistant",
                "content": str(entry.message),
            })
        messages.append({"role": "user", "content": current_message or ""})
        return messages

    def _apply_budget(self, history: list[ChatMessage]) -> list[ChatMessage]:
        """Drop the oldest messages until the remaining history fits history_max_chars."""
        if self.history_max_chars is None:
            return history

        kept: list[ChatMessage] = []
        used = 0
        for entry in reversed(history):
            size = len(str(entry.message))
            if used + size > self.history_max_chars:
                break
            kept.append(entry)
            used += size
        if len(kept) < len(history):
            self.logging.debug(
                "History budget of %d chars: dropped %d oldest message(s).",
                self.history_max_chars, len(history) - len(kept),
            )
        kept.reverse()
        return kept
