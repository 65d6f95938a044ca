"""Auto-detect installed assistant backends and provide a unified registry."""

from ..provider import SessionProvider
from .claude_code import ClaudeCodeProvider

PROVIDERS = {
    ClaudeCodeProvider.name: ClaudeCodeProvider,
}


def get_available_providers() -> list[SessionProvider]:
    """Auto-detect which assistants have logs on this machine."""
    providers = []
    for ProviderClass in PROVIDERS.values():
        provider = ProviderClass()
        if provider.is_available():
            providers.append(provider)
    return providers


def get_provider(name: str = ClaudeCodeProvider.name) -> SessionProvider:
    """Return a provider by name, whether or not its data exists."""
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"Unknown provider: {name}") from None
