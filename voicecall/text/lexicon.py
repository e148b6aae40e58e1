"""
Spoken-word tables used by the sanitizer.

Each language carries the word for "percent", the spoken names of the
currencies the number stage recognises, and a dictionary of informal
abbreviations that speech engines read letter by letter.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

DEFAULT_LANGUAGE = "id"


@dataclass(frozen=True)
class Lexicon:
    language: str
    percent_word: str
    currency_names: Mapping[str, str]
    abbreviations: Mapping[str, str]


_INDONESIAN = Lexicon(
    language="id",
    percent_word="persen",
    currency_names=MappingProxyType({
        "rp": "rupiah",
        "idr": "rupiah",
        "$": "dolar",
        "usd": "dolar",
        "€": "euro",
        "eur": "euro",
        "£": "pound",
        "¥": "yen",
    }),
    abbreviations=MappingProxyType({
        "yg": "yang",
        "dgn": "dengan",
        "tdk": "tidak",
        "gak": "tidak",
        "nggak": "tidak",
        "utk": "untuk",
        "krn": "karena",
        "sdh": "sudah",
        "udh": "sudah",
        "blm": "belum",
        "bgt": "banget",
        "aja": "saja",
        "jg": "juga",
        "sy": "saya",
        "tp": "tapi",
        "kalo": "kalau",
        "emg": "memang",
        "bgmn": "bagaimana",
        "gmn": "gimana",
        "sbg": "sebagai",
        "spt": "seperti",
        "org": "orang",
        "hrs": "harus",
        "lg": "lagi",
        "skrg": "sekarang",
        "bs": "bisa",
        "dll": "dan lain-lain",
        "dsb": "dan sebagainya",
        "thx": "terima kasih",
        "makasih": "terima kasih",
        "trims": "terima kasih",
        "ok": "oke",
    }),
)

_ENGLISH = Lexicon(
    language="en",
    percent_word="percent",
    currency_names=MappingProxyType({
        "rp": "rupiah",
        "idr": "rupiah",
        "$": "dollars",
        "usd": "dollars",
        "€": "euros",
        "eur": "euros",
        "£": "pounds",
        "¥": "yen",
    }),
    abbreviations=MappingProxyType({
        "btw": "by the way",
        "idk": "I don't know",
        "imo": "in my opinion",
        "imho": "in my humble opinion",
        "asap": "as soon as possible",
        "pls": "please",
        "plz": "please",
        "thx": "thanks",
        "ty": "thank you",
        "np": "no problem",
        "tbh": "to be honest",
        "afaik": "as far as I know",
        "fyi": "for your information",
        "ok": "okay",
    }),
)

_LEXICONS = {lexicon.language: lexicon for lexicon in (_INDONESIAN, _ENGLISH)}


def primary_subtag(language: str) -> str:
    """Return the lowercase primary subtag of a language tag ("id-ID" -> "id")."""
    return (language or DEFAULT_LANGUAGE).replace("_", "-").split("-")[0].strip().lower() or DEFAULT_LANGUAGE


def get_lexicon(language: str) -> Lexicon:
    """Return the lexicon for a language tag, falling back to Indonesian."""
    return _LEXICONS.get(primary_subtag(language), _LEXICONS[DEFAULT_LANGUAGE])
