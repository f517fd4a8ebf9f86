"""
=====================================================
Craftsman Phone Assistant - LLM Service Base Interface
=====================================================
Single-shot chat completion: one system prompt plus the caller's
latest utterance in, one short spoken reply out.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from enum import Enum


class LLMRole(Enum):
    """Roles in conversation"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """One chat message"""
    role: LLMRole
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(LLMRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(LLMRole.USER, content)

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMRequest:
    """One completion request; limits keep replies short enough to speak"""
    messages: List[Message]
    temperature: float = 0.4
    max_tokens: int = 200

    def to_api_params(self) -> Dict[str, Any]:
        """Chat-completions parameters shared by OpenAI-compatible backends"""
        return {
            "messages": [message.to_dict() for message in self.messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass
class LLMResponse:
    """Completion result"""
    content: str
    finish_reason: Optional[str] = None
    tokens_used: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Reply with surrounding whitespace removed"""
        return (self.content or "").strip()


class LLMServiceBase(ABC):
    """
    Abstract base class for chat model clients

    Implementations hold no conversation history and are shared by all
    concurrent calls.
    """

    name = "llm"

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model

    @abstractmethod
    async def chat(self, request: LLMRequest) -> LLMResponse:
        """
        Run one completion

        Raises:
            Provider-specific errors on failure
        """
        pass

    async def close(self) -> None:
        """Release network resources"""
        return None
