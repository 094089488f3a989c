import os
import logging
from typing import Dict, List, Optional

from groq import Groq
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"


class GroqIntegrationError(Exception):
    """Raised when the Groq API cannot produce a completion."""


def get_groq_response(input_text: str, model: str = DEFAULT_MODEL,
                      history: Optional[List[Dict[str, str]]] = None,
                      system_prompt: Optional[str] = None,
                      temperature: float = 0.3, max_tokens: int = 1500) -> str:
    """
    Get a response from Groq LLM with conversation history support.

    Args:
        input_text (str): The text to send to the LLM
        model (str): The Groq model to use
        history (list): Optional conversation history
        system_prompt (str): Optional custom system prompt
        temperature (float): Sampling temperature
        max_tokens (int): Completion token limit

    Returns:
        str: The LLM response

    Raises:
        GroqIntegrationError: if the API key is missing or the call fails
    """
    api_key = os.environ.get("GROQ_API_KEY")
    if not api_key:
        raise GroqIntegrationError("GROQ_API_KEY environment variable not set")

    if history is None:
        history = []

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend(history)
    messages.append({"role": "user", "content": input_text})

    logger.debug(f"Sending Groq request with {len(history)} previous messages, model {model}")

    try:
        client = Groq(api_key=api_key)
        chat_completion = client.chat.completions.create(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return chat_completion.choices[0].message.content
    except Exception as api_error:
        logger.error(f"Error during Groq API call: {api_error}", exc_info=True)
        raise GroqIntegrationError(f"Failed to get response from Groq API: {api_error}") from api_error
