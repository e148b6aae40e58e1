"""
Prompt templates and spoken phrases per language.

The structured prompt is used for the normal turn and carries the recent
history. The simple prompt is the short, strict variant used when the first
answer came back malformed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..core.models import ConversationTurn, Role
from ..text.lexicon import primary_subtag

USER_LABEL = "User"


@dataclass(frozen=True)
class Phrasebook:
    language: str
    structured_system_prompt: str
    simple_system_prompt: str
    greeting: str
    clarification: str
    fallback_greeting: str
    unsuitable_apology: str
    unsuitable_follow_up: str
    empty_response: str
    backend_error: str


_INDONESIAN = Phrasebook(
    language="id",
    structured_system_prompt="""Kamu adalah {ai_name}, asisten AI berbahasa Indonesia.

ATURAN PENTING:
1. WAJIB berbicara dalam bahasa Indonesia SAJA, jangan gunakan bahasa lain
2. Jika perlu berpikir: <think>pemikiran dalam bahasa Indonesia</think>
3. SELALU tutup tag </think> sebelum respons
4. Respons maksimal 2-3 kalimat setelah </think>
5. Gunakan gaya bicara natural dan ramah

Contoh format yang benar:
<think>Saya perlu menjawab pertanyaan user dengan ramah</think>
Halo! Saya baik-baik saja, terima kasih sudah bertanya.

Hindari:
- Bahasa Inggris atau bahasa lain
- Respons terlalu panjang
- Tag <think> tidak ditutup

Kamu sedang berbicara via voice call.""",
    simple_system_prompt=(
        "Kamu adalah {ai_name}. Jawab HANYA dalam bahasa Indonesia, "
        "maksimal 2 kalimat, natural dan ramah."
    ),
    greeting="Halo {user_name}! Saya {ai_name}. Bagaimana kabar Anda hari ini?",
    clarification="Maaf, bisa tolong ulangi pertanyaannya?",
    fallback_greeting="Halo! Ada yang bisa saya bantu?",
    unsuitable_apology="Maaf, saya tidak dapat memproses respons tersebut dengan baik.",
    unsuitable_follow_up="Saya telah memproses permintaan Anda. Apakah ada yang bisa saya bantu lagi?",
    empty_response="Maaf, tidak ada respons yang dapat saya berikan.",
    backend_error="Maaf, terjadi kesalahan saat berkomunikasi dengan AI. Silakan coba lagi.",
)

_ENGLISH = Phrasebook(
    language="en",
    structured_system_prompt="""You are {ai_name}, an English-speaking AI assistant.

IMPORTANT RULES:
1. Speak English ONLY, never switch to another language
2. If you need to think: <think>your thoughts in English</think>
3. ALWAYS close the </think> tag before answering
4. Answer in at most 2-3 sentences after </think>
5. Keep a natural, friendly tone

Example of the correct format:
<think>I should answer the user warmly</think>
Hi! I'm doing well, thanks for asking.

Avoid:
- Any language other than English
- Long answers
- Leaving a <think> tag open

You are talking on a voice call.""",
    simple_system_prompt=(
        "You are {ai_name}. Answer ONLY in English, "
        "at most 2 sentences, natural and friendly."
    ),
    greeting="Hi {user_name}! I'm {ai_name}. How are you today?",
    clarification="Sorry, could you repeat the question?",
    fallback_greeting="Hi! How can I help you?",
    unsuitable_apology="Sorry, I couldn't put that answer into words properly.",
    unsuitable_follow_up="I've handled your request. Is there anything else I can help with?",
    empty_response="Sorry, I don't have an answer for that.",
    backend_error="Sorry, something went wrong talking to the AI. Please try again.",
)

_PHRASEBOOKS = {book.language: book for book in (_INDONESIAN, _ENGLISH)}


def get_phrasebook(language: str) -> Phrasebook:
    return _PHRASEBOOKS.get(primary_subtag(language), _INDONESIAN)


class PromptBuilder:
    """Renders completion-style prompts for the generate endpoint."""

    def __init__(self, ai_name: str = "Asistenqu", language: str = "id-ID"):
        self.ai_name = ai_name
        self.phrases = get_phrasebook(language)

    def structured(self, message: str, history: Sequence[ConversationTurn] = ()) -> str:
        prompt = self.phrases.structured_system_prompt.format(ai_name=self.ai_name) + "\n\n"
        for turn in history:
            if turn.role is Role.USER:
                prompt += f"{USER_LABEL}: {turn.content}\n"
            elif turn.role is Role.ASSISTANT:
                prompt += f"{self.ai_name}: {turn.content}\n"
        prompt += f"{USER_LABEL}: {message}\n{self.ai_name}: "
        return prompt

    def simple(self, message: str) -> str:
        system = self.phrases.simple_system_prompt.format(ai_name=self.ai_name)
        return f"{system}\n\n{USER_LABEL}: {message}\n{self.ai_name}: "
