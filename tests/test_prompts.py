from lena_prompts import SYSTEM_PROMPT, load_system_prompt


def test_builtin_prompt():
    assert load_system_prompt() == SYSTEM_PROMPT
    assert SYSTEM_PROMPT.startswith("Ti si Lena")
    assert "Ne postavljaš dijagnozu." in SYSTEM_PROMPT


def test_prompt_from_file(tmp_path):
    p = tmp_path / "prompt.txt"
    p.write_text("\nTi si Lena, kratka verzija.\n", encoding="utf-8")
    assert load_system_prompt(str(p)) == "Ti si Lena, kratka verzija."


def test_prompt_from_env(tmp_path, monkeypatch):
    p = tmp_path / "prompt.txt"
    p.write_text("Iz okruženja.", encoding="utf-8")
    monkeypatch.setenv("SYSTEM_PROMPT_FILE", str(p))
    assert load_system_prompt() == "Iz okruženja."


def test_missing_or_empty_file_falls_back(tmp_path):
    assert load_system_prompt(str(tmp_path / "nope.txt")) == SYSTEM_PROMPT
    empty = tmp_path / "empty.txt"
    empty.write_text("   \n", encoding="utf-8")
    assert load_system_prompt(str(empty)) == SYSTEM_PROMPT
