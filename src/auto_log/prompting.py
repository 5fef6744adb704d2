from __future__ import annotations

SYSTEM_PROMPT = "You are a helpful developer assistant"

MAX_MESSAGE_CHARS = 100


def build_system_prompt() -> str:
    return SYSTEM_PROMPT


def build_commit_prompt(changes: str) -> str:
    return (
        f"Baseado nessas mudanças de código: {changes}. "
        "Crie uma mensagem de commit para github. "
        "ESCREVA APENAS A MENSAGEM. 1 LINHA. "
        f"MAXIMO DE {MAX_MESSAGE_CHARS} CARACTERES."
    )
