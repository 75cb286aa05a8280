"""
Ranking oracle backends — AWS Bedrock (direct invocation) and Azure OpenAI (chat).

Every backend implements complete(context, payload) and returns the text of a
single JSON object. Parsing and validation happen in the oracle client, the
same way for every backend. SDK clients are created lazily on first call so
importing this module never needs credentials.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Type

from driver_ranking import config

logger = logging.getLogger('services.llm')

# Assistant turn the Bedrock call is primed with; the model continues after "{".
BEDROCK_PREFILL = 'Here is directly the JSON requested for with no additional text:\n{'


class UnknownProviderError(ValueError):
    """Raised when AI_PROVIDER names no registered backend."""


class MalformedResponseError(ValueError):
    """Raised when a backend cannot produce a JSON object from the model output."""


class RankingBackend(ABC):
    """Synchronous structured-text completion."""
    provider: str = ''

    @abstractmethod
    def complete(self, context: str, payload: str) -> str:
        """
        Args:
            context: instruction / system prompt.
            payload: serialized evidence, sent as the user request.

        Returns:
            Raw text of one JSON object.
        """
        ...


class BedrockBackend(RankingBackend):
    """Anthropic messages API through bedrock-runtime invoke_model."""
    provider = 'aws'

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                'bedrock-runtime',
                region_name=config.AWS_REGION_NAME,
                aws_access_key_id=config.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
            )
            logger.info("Bedrock client initialized (%s)", config.AWS_REGION_NAME)
        return self._client

    def complete(self, context: str, payload: str) -> str:
        body = {
            'anthropic_version': config.ANTHROPIC_VERSION,
            'system': context,
            'messages': [
                {'role': 'user', 'content': [{'type': 'text', 'text': payload}]},
                {'role': 'assistant', 'content': [{'type': 'text', 'text': BEDROCK_PREFILL}]},
            ],
            'max_tokens': config.LLM_MAX_TOKENS,
            'temperature': config.LLM_TEMPERATURE,
        }
        response = self.client.invoke_model(
            modelId=config.ANTHROPIC_MODEL_ID,
            accept='application/json',
            contentType='application/json',
            body=json.dumps(body),
        )
        text = json.loads(response['body'].read())['content'][0]['text']
        logger.debug("Bedrock text content: %s", text)
        return close_prefilled_object(text)


class AzureChatBackend(RankingBackend):
    """Azure OpenAI chat completion in JSON mode."""
    provider = 'azure'

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from openai import AzureOpenAI
            self._client = AzureOpenAI(
                api_key=config.AZURE_API_KEY,
                azure_endpoint=config.AZURE_ENDPOINT,
                azure_deployment=config.AZURE_MODEL_ID,
                api_version=config.AZURE_API_VERSION,
            )
            logger.info("Azure OpenAI client initialized (%s)", config.AZURE_MODEL_ID)
        return self._client

    def complete(self, context: str, payload: str) -> str:
        response = self.client.chat.completions.create(
            model=config.AZURE_MODEL_ID,
            messages=[
                {'role': 'system', 'content': context},
                {'role': 'user', 'content': payload},
            ],
            temperature=config.LLM_TEMPERATURE,
            max_tokens=config.LLM_MAX_TOKENS,
            response_format={'type': 'json_object'},
        )
        content = response.choices[0].message.content
        if not content:
            raise MalformedResponseError("Azure returned an empty completion")
        return content


def close_prefilled_object(text: str) -> str:
    """
    Rebuild the JSON object the model continued from the primed "{".

    Re-attaches the opening brace and drops anything after the last "}".
    """
    end = text.rfind('}')
    if end == -1:
        raise MalformedResponseError("No closing brace in model output")
    return '{' + text[:end + 1]


# ── Backend registry ─────────────────────────────────────────────────────────

BACKENDS: Dict[str, Type[RankingBackend]] = {
    'aws': BedrockBackend,
    'azure': AzureChatBackend,
}


def get_backend(provider: str = None) -> RankingBackend:
    """Look up and instantiate the backend for a provider flag."""
    provider = provider or config.AI_PROVIDER
    backend_cls = BACKENDS.get(provider)
    if not backend_cls:
        raise UnknownProviderError(f'Invalid provider - must be "aws" or "azure" (got {provider!r})')
    return backend_cls()
