from .azure import AzureOpenAIProvider
from .deepseek import DeepSeekProvider
from .openai import OpenAIProvider

__all__ = ["AzureOpenAIProvider", "DeepSeekProvider", "OpenAIProvider"]
