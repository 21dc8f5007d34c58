"""
Centralized AI Service Manager
Direct Claude calls with retry logic, used when the workflow server can't run the parts analysis
"""
import time
import logging
from typing import Optional, Dict, Any, List
from functools import wraps

import anthropic

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Base exception for AI service errors"""
    pass


class AIServiceUnavailable(AIServiceError):
    """Raised when AI service is not configured or unavailable"""
    pass


class AIServiceTimeout(AIServiceError):
    """Raised when AI service times out"""
    pass


def retry_on_failure(max_attempts=3, delay=2, backoff=2, retry_on=(Exception,), no_retry_on=()):
    """
    Decorator to retry function on failure with exponential backoff

    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries (seconds)
        backoff: Multiplier for delay on each retry
        retry_on: Exception types that trigger a retry
        no_retry_on: Exception types that are raised immediately
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except no_retry_on:
                    raise
                except retry_on as e:
                    last_exception = e
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                    )

                    if attempt < max_attempts - 1:
                        logger.info(f"Retrying in {current_delay} seconds...")
                        time.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(f"All {max_attempts} attempts failed for {func.__name__}")

            raise last_exception

        return wrapper
    return decorator


class AIService:
    """
    Claude client wrapper with retry logic and error handling
    """

    def __init__(self, config):
        """
        Initialize AI service with configuration

        Args:
            config: Flask app configuration (or any mapping with the same keys)
        """
        self.config = config
        self.anthropic_client = None

        self._initialize_clients()

    def _initialize_clients(self):
        """Initialize AI API clients"""
        api_key = self.config.get('ANTHROPIC_API_KEY')
        if not api_key:
            return

        try:
            self.anthropic_client = anthropic.Anthropic(
                api_key=api_key,
                timeout=self.config.get('AI_TIMEOUT', 120)
            )
            logger.info("Anthropic Claude client initialized")
        except Exception as e:
            logger.error(f"Failed to initialize Anthropic client: {e}")

    @retry_on_failure(max_attempts=3, delay=2, backoff=2, no_retry_on=(AIServiceUnavailable,))
    def call_claude(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None
    ):
        """
        Call Claude API with retry logic

        Args:
            messages: List of message dictionaries
            model: Model name (defaults to config)
            max_tokens: Maximum tokens (defaults to config)
            temperature: Temperature setting (defaults to config)
            system: System prompt

        Returns:
            Anthropic Message response

        Raises:
            AIServiceUnavailable: If Claude is not configured
            AIServiceError: On API errors
        """
        if not self.anthropic_client:
            raise AIServiceUnavailable("Anthropic Claude is not configured")

        model_config = self.config['AI_MODELS']['claude']
        model = model or model_config['model']
        max_tokens = max_tokens or model_config['max_tokens']
        temperature = temperature if temperature is not None else model_config['temperature']

        try:
            logger.info(f"Calling Claude API: model={model}, max_tokens={max_tokens}")

            params = {
                'model': model,
                'max_tokens': max_tokens,
                'temperature': temperature,
                'messages': messages,
            }
            if system:
                params['system'] = system

            response = self.anthropic_client.messages.create(**params)

            logger.info(f"Claude API call successful: stop_reason={response.stop_reason}")
            return response

        except anthropic.APITimeoutError as e:
            logger.error(f"Claude API timeout: {e}")
            raise AIServiceTimeout(f"Claude API timed out: {e}")
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            raise AIServiceError(f"Claude API error: {e}")

    def complete_text(self, prompt: str, system: Optional[str] = None, **kwargs) -> str:
        """Send a single user prompt and return the concatenated text blocks of the reply."""
        response = self.call_claude(
            messages=[{'role': 'user', 'content': prompt}],
            system=system,
            **kwargs
        )
        return extract_text(response)

    def is_available(self, service: str = 'claude') -> bool:
        """
        Check if a specific AI service is available

        Args:
            service: Service name ('claude')

        Returns:
            True if service is available, False otherwise
        """
        if service == 'claude':
            return self.anthropic_client is not None
        return False


def extract_text(response) -> str:
    """Join the text blocks of an Anthropic message response."""
    blocks = getattr(response, 'content', None) or []
    return ''.join(
        getattr(block, 'text', '') for block in blocks
        if getattr(block, 'type', 'text') == 'text'
    )
