"""Prompt text files shipped with the package, and a loader for them."""
from functools import lru_cache
from pathlib import Path
import typing as t

PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_prompt(prompt_name: str, prompts_dir: t.Optional[str] = None) -> str:
    """
    Load a prompt from a text file.

    Args:
        prompt_name: Name of the prompt file (without .txt extension)
        prompts_dir: Optional custom path to the prompts directory.
                    Defaults to this package's directory.

    Returns:
        The content of the prompt file, stripped of surrounding whitespace.

    Raises:
        FileNotFoundError: If the prompt file doesn't exist.
    """
    prompt_file = Path(prompts_dir) if prompts_dir is not None else PROMPTS_DIR
    prompt_file = prompt_file / f"{prompt_name}.txt"

    if not prompt_file.is_file():
        raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

    return prompt_file.read_text(encoding="utf-8").strip()
