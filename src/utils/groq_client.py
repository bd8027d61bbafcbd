from groq import AsyncGroq


def build_groq_client(api_key: str) -> AsyncGroq:
    # max_retries=0: o único retry (429) é feito por nós no orquestrador
    return AsyncGroq(api_key=api_key, max_retries=0)
