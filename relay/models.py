"""
Models - Relay Module
Request, catalog and dispatch types shared across the pipeline
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalysisRequest(BaseModel):
    """Inbound analysis request; both records are opaque JSON"""
    model_config = ConfigDict(populate_by_name=True)

    user_data: Any = Field(..., alias="userData")
    exercise_data: Any = Field(..., alias="exerciseData")

    @field_validator("user_data", "exercise_data")
    @classmethod
    def validate_not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must not be null")
        return v


class GenerationMethod(str, Enum):
    """Upstream generation operations, most preferred first."""

    GENERATE_CONTENT = "generateContent"
    GENERATE_TEXT = "generateText"


KNOWN_METHODS: FrozenSet[str] = frozenset(method.value for method in GenerationMethod)


@dataclass(frozen=True)
class ModelDescriptor:
    name: str
    supported_generation_methods: FrozenSet[str] = frozenset()

    @property
    def usable(self) -> bool:
        return bool(self.supported_generation_methods & KNOWN_METHODS)

    def supports(self, method: GenerationMethod) -> bool:
        return method.value in self.supported_generation_methods

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["ModelDescriptor"]:
        """Build a descriptor from one catalog entry, or None if it has no name."""
        if not isinstance(payload, dict):
            return None
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            return None

        methods = payload.get("supportedGenerationMethods")
        if not isinstance(methods, list):
            methods = []
        return cls(
            name=name.strip(),
            supported_generation_methods=frozenset(m for m in methods if isinstance(m, str)),
        )


@dataclass(frozen=True)
class DispatchSuccess:
    answer: str
    attempts: int = 1


@dataclass(frozen=True)
class DispatchUpstreamError:
    status_code: int
    details: str
    attempts: int = 1


@dataclass(frozen=True)
class DispatchTimeout:
    attempts: int = 1


@dataclass(frozen=True)
class DispatchTransportError:
    message: str
    attempts: int = 1


DispatchOutcome = Union[
    DispatchSuccess,
    DispatchUpstreamError,
    DispatchTimeout,
    DispatchTransportError,
]


@dataclass(frozen=True)
class AnalysisResult:
    ai_answer: str
    model_name: str
    method: GenerationMethod
    attempts: int = 1

    def to_response(self) -> Dict[str, str]:
        return {"aiAnswer": self.ai_answer}
