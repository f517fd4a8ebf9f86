"""
=====================================================
Craftsman Phone Assistant - Dialogue Manager
=====================================================
Drives one conversational turn:

1. Builds the system prompt from the collected slot state
2. Asks the language model for the next spoken reply
3. Extracts booking details from the caller's transcript
4. Decides whether the appointment can be created

A model failure never escapes: the caller hears a "please repeat" line
and the slot state is left as it was.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from loguru import logger

from services.llm.llm_base import LLMServiceBase, LLMRequest, Message
from .extractor import extract_appointment_info
from .prompts import build_system_prompt, fallback_reply, DEFAULT_LANGUAGE
from .slot_state import SlotState, is_complete


class NextStep(Enum):
    """What the call should do after a turn"""
    CONTINUE_CONVERSATION = "continue_conversation"
    CREATE_APPOINTMENT = "create_appointment"


@dataclass
class DialogueResult:
    """Outcome of one turn"""
    reply_text: str
    slot_state: SlotState
    is_complete: bool
    next_step: NextStep


class DialogueManager:
    """
    Slot-filling conversation over a shared LLM client

    Stateless between calls: all per-call data arrives as arguments.
    """

    def __init__(
        self,
        llm: LLMServiceBase,
        temperature: float = 0.4,
        max_tokens: int = 200,
        timeout: float = 15.0,
        language: str = DEFAULT_LANGUAGE
    ):
        """
        Initialize dialogue manager

        Args:
            llm: Conversational model client
            temperature: Sampling temperature for replies
            max_tokens: Cap on generated reply tokens
            timeout: Seconds to wait for the model
            language: Prompt language ("de" or "en")
        """
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.language = language

    def build_request(self, transcript: str, slot_state: SlotState) -> LLMRequest:
        """Assemble the model request for one caller utterance"""
        return LLMRequest(
            messages=[
                Message.system(build_system_prompt(slot_state, self.language)),
                Message.user(transcript),
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    async def converse(self, transcript: str, slot_state: SlotState) -> DialogueResult:
        """
        Run one conversational turn

        Args:
            transcript: What the caller said in this chunk
            slot_state: Slot state before this turn

        Returns:
            DialogueResult with the reply, updated state and next step
        """
        request = self.build_request(transcript, slot_state)

        try:
            response = await asyncio.wait_for(self.llm.chat(request), timeout=self.timeout)
            reply = response.text
        except Exception as e:
            logger.warning(f"Dialogue: Model call failed, asking caller to repeat: {e!r}")
            return DialogueResult(
                reply_text=fallback_reply(self.language),
                slot_state=slot_state,
                is_complete=False,
                next_step=NextStep.CONTINUE_CONVERSATION,
            )

        if not reply:
            reply = fallback_reply(self.language)

        # Extraction works on what the caller said, not on the model reply
        updated = extract_appointment_info(transcript, slot_state)
        complete = is_complete(updated)
        next_step = NextStep.CREATE_APPOINTMENT if complete else NextStep.CONTINUE_CONVERSATION

        logger.info(
            f"Dialogue: Turn processed - complete={complete}, "
            f"missing={updated.missing_fields()}, next={next_step.value}"
        )

        return DialogueResult(
            reply_text=reply,
            slot_state=updated,
            is_complete=complete,
            next_step=next_step,
        )
