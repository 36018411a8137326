"""Decide whether an incoming message should get a reply.

Engagement rules, in order:
  1. the feature must be enabled;
  2. private chats are always eligible, groups and channels only when an
     allow-list of chat ids is configured;
  3. groups and channels must be on that allow-list, matching either the
     raw id or its ``-100`` channel form;
  4. messages from the bot owner never trigger a reply;
  5. the wake-word (any inflection of "шляпа") engages in private chats, and
     in groups only with ``llm_shlyapa_in_groups``; without it, any generic
     trigger word engages.
"""

import re

import structlog

from shlyapa.config import Settings

logger = structlog.get_logger()

CHANNEL_PREFIX = "-100"

# шляпа, шляпи, шляпі, шляпу, шляпо, шляпою, ...
WAKE_WORD = re.compile(r"шляп[аиіуоюєї]", re.IGNORECASE)

# Wake-word together with the punctuation and whitespace around it
WAKE_WORD_WITH_PUNCTUATION = re.compile(
    r"[\s,.:;!?]*(шляп[аиіуоюєї])[\s,.:;!?]*", re.IGNORECASE
)

GROUP_CHAT_TYPES = ("group", "channel")


def channel_alternate(chat_id: str) -> str:
    """The other textual form of a channel id (``-100`` stripped or added)."""
    if chat_id.startswith(CHANNEL_PREFIX):
        return chat_id[len(CHANNEL_PREFIX):]
    return f"{CHANNEL_PREFIX}{chat_id}"


class TriggerClassifier:
    def __init__(self, settings: Settings):
        self.settings = settings

    def is_chat_allowed(self, chat_id: str) -> bool:
        alternate = channel_alternate(chat_id)
        allowed = self.settings.allowed_chats_list
        if any(entry in (chat_id, alternate) for entry in allowed):
            return True
        logger.debug(
            "trigger.chat_not_allowed",
            chat_id=chat_id,
            chat_id_alt=alternate,
            allowed_chats=len(allowed),
        )
        return False

    def should_engage(
        self,
        text: str,
        chat_id: str | int | None,
        chat_type: str,
        sender_id: str | int | None = None,
    ) -> bool:
        """Whether this message should be answered."""
        if not self.settings.llm_enabled:
            return False

        has_allow_list = bool(self.settings.allowed_chats_list)
        if chat_type != "private":
            if chat_type not in GROUP_CHAT_TYPES or not has_allow_list:
                return False
            if not self.is_chat_allowed(str(chat_id)):
                return False

        owner = self.settings.bot_owner_id
        if owner is not None and sender_id is not None and str(sender_id) == str(owner):
            return False

        if WAKE_WORD.search(text):
            if chat_type == "private":
                return True
            return self.settings.llm_shlyapa_in_groups

        lowered = text.lower()
        return any(word in lowered for word in self.settings.trigger_words_list)

    def extract_content(self, text: str) -> str:
        """Strip the wake-word and its punctuation, or return text unchanged."""
        cleaned, stripped = WAKE_WORD_WITH_PUNCTUATION.subn(" ", text)
        if not stripped:
            return text
        return cleaned.strip()
