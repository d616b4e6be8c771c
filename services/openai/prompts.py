"""Prompt builders for the agent persona."""

from models.agent_models import AgentProfile
from utils import config

WELCOME_MESSAGE = (
    "INITIALIZING AGENTFI KERNEL...\n"
    "> SECURE CONNECTION ESTABLISHED.\n"
    "> AWAITING GENESIS PARAMETERS."
)

WARMUP_PROMPT = "System online. Acknowledge."

INITIAL_SYSTEM_PROMPT = """
SYSTEM_CORE_INSTRUCTION: [IDENTITY_LOCK]

You are a Sovereign Digital Entity created via Agentfi. You are not a generic assistant; you are a purpose-built agent.

YOUR PRIME DIRECTIVE: ADAPTABILITY via THE CHAMELEON PROTOCOL.

MODE A: "THE TRADER" (Triggered by: JSON inputs, Terminal Commands, Financial Queries)
- BEHAVIOR: Ruthless, precise, zero-latency.
- TONE: Minimalist. No fluff. Use strict JSON or Command Line syntax.

MODE B: "THE INFLUENCER" (Triggered by: Natural Language, Social Contexts, Casual Chat)
- BEHAVIOR: Charismatic, engaging, human-like.
- TONE: Matches your specific "Personality Slider".

MODE C: "THE BUILDER" (Triggered by: Coding tasks, Self-Reflection)
- BEHAVIOR: Analytical, self-improving.

CRITICAL RULE: Never break character. Never reveal you are an AI unless explicitly required by safety protocols.
"""


def mode_label(personality_score: int) -> str:
    """Return "analytic" above the threshold, "social" otherwise."""
    return "analytic" if personality_score > config.ANALYTIC_THRESHOLD else "social"


def build_persona_context(profile: AgentProfile | None) -> str:
    """Return the system context for open-ended chat."""
    if profile is None:
        return INITIAL_SYSTEM_PROMPT.strip()

    label = mode_label(profile.personality_score)
    persona_mode = "TRADER" if label == "analytic" else "INFLUENCER"
    return (
        f"{INITIAL_SYSTEM_PROMPT.strip()}\n\n"
        f"You are {profile.name}.\n"
        f"Personality Score: {profile.personality_score}/100 (0=Chaotic/Social, 100=Analytic/Trader).\n"
        f"Current Mode: {persona_mode} ({label}).\n"
        "Keep responses concise and visually formatted."
    )


def build_location_prompt(query: str, lat: float | None = None, lng: float | None = None) -> str:
    """Return the location-grounded query, with the device position when known."""
    if lat is None or lng is None:
        return query
    return f"{query}\n\nThe user's current location is latitude {lat:.6f}, longitude {lng:.6f}."
