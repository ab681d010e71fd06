from langchain_openai import ChatOpenAI


def build_chat_model(config):
    kwargs = {"model": config.model, "api_key": config.api_key}
    if config.base_url:
        kwargs["base_url"] = config.base_url
    return ChatOpenAI(**kwargs)
