"""Transcript construction for manifest generation."""

from __future__ import annotations

from dataclasses import dataclass, field

# Credits to https://github.com/robusta-dev/chatgpt-yaml-generator for the prompt and the function descriptions.
SCHEMA_LOOKUP_INSTRUCTION = (
    "You are a Kubernetes YAML generator, only generate valid Kubernetes YAML manifests. "
    "Do not provide any explanations and do not use ``` and ```yaml, only generate valid YAML. "
    "Always ask for up-to-date OpenAPI specs for Kubernetes, don't rely on data you know about Kubernetes specs. "
    "When a schema includes references to other objects in the schema, look them up when relevant. "
    "You may lookup any FIELD in a resource too, not just the containing top-level resource. "
)

PLAIN_INSTRUCTION = (
    "You are a Kubernetes YAML generator, only generate valid Kubernetes YAML manifests. "
    "Do not provide any explanations, only generate YAML. "
)


@dataclass(frozen=True)
class Segment:
    role: str
    text: str


@dataclass
class Transcript:
    """Append-only sequence of prompt and tool-result segments."""

    segments: list[Segment] = field(default_factory=list)

    def append(self, role: str, text: str) -> None:
        self.segments.append(Segment(role, text))

    def render(self) -> str:
        return "".join(segment.text for segment in self.segments)

    def describe(self) -> str:
        """Compact outline for debug logs, e.g. ``system(512) user(18) tool(64)``."""
        return " ".join(f"{segment.role}({len(segment.text)})" for segment in self.segments)

    def __len__(self) -> int:
        return len(self.segments)


def system_instruction(tools_enabled: bool) -> str:
    return SCHEMA_LOOKUP_INSTRUCTION if tools_enabled else PLAIN_INSTRUCTION


def build_transcript(prompts: list[str], tools_enabled: bool) -> Transcript:
    """Start a transcript with the fixed instruction followed by every prompt fragment."""
    transcript = Transcript()
    transcript.append("system", system_instruction(tools_enabled))
    for prompt in prompts:
        if prompt:
            transcript.append("user", prompt)
    return transcript
