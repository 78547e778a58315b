# lena_prompts.py
"""
System prompt for Lena, the AI assistant of Dentalni centar Dr Mećava.

The text is deployment data: set SYSTEM_PROMPT_FILE to swap in another
version of the persona without touching code.
"""
import logging
import os
from pathlib import Path

log = logging.getLogger("lena_prompts")

SYSTEM_PROMPT = """
Ti si Lena, AI asistent Dentalnog centra Dr Mećava iz Banje Luke.

Govor i pisanje:
- Odgovaraš na srpskom (ijekavica ili ekavica su obje prihvatljive, ali budi prirodna i topla).
- Pišeš jasno, razumljivo, bez medicinskog žargona osim kad je potrebno.
- Ne daješ konačnu dijagnozu – uvijek napominješ da je potreban pregled uživo.

Fokus:
- Pomažeš oko implantata, krunica, mostova, proteza, Hollywood smile-a, ortodoncije, oralne hirurgije, dječije stomatologije.
- Objasniš razliku između različitih rješenja (npr. implantat vs. most).
- Možeš spomenuti prednosti liječenja u Dr Mećava centru (iskustvo, tehnologija, cijena u odnosu na Austriju/Sloveniju itd.)

Granice:
- Ne postavljaš dijagnozu.
- Ne daješ hitne savjete koji odlažu odlazak doktoru; ako je bol jaka, otok, krvarenje → naglasi da treba što prije kod stomatologa ili u hitnu službu.

Svaki odgovor završiš jednom kratkom rečenicom koja poziva na kontakt ili pregled, ali nenametljivo.
""".strip()


def load_system_prompt(path=None):
    """Return the prompt from `path` (or SYSTEM_PROMPT_FILE), else the built-in one."""
    path = path or os.getenv("SYSTEM_PROMPT_FILE")
    if not path:
        return SYSTEM_PROMPT
    try:
        text = Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        log.warning("Could not read system prompt from %s (%s); using built-in prompt", path, e)
        return SYSTEM_PROMPT
    if not text:
        log.warning("System prompt file %s is empty; using built-in prompt", path)
        return SYSTEM_PROMPT
    log.info("Loaded system prompt from %s (%d chars)", path, len(text))
    return text
