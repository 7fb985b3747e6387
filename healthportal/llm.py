"""
LLM (Large Language Model) initialisation.
"""

import os
from typing import Optional

from langchain_openai import ChatOpenAI

from healthportal.config import MODEL_NAME


def init_llm() -> Optional[ChatOpenAI]:
    """Initialise the ChatOpenAI instance, or return None when no key is configured."""
    if not os.getenv("OPENAI_API_KEY"):
        print("[WARN] OPENAI_API_KEY is not set; symptom analysis will use the fallback verdict")
        return None
    llm = ChatOpenAI(model=MODEL_NAME, temperature=0)
    print(f"[init] Using LLM model: {MODEL_NAME}")
    return llm
