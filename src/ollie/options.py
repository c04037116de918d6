from pydantic import BaseModel

DEFAULT_CONTEXT_WINDOW = 2048


class GenerationOptions(BaseModel):
    """Sampling and context parameters sent with every request.

    Unset fields are left out of the request so the backend's own
    defaults apply.
    """

    num_ctx: int | None = None
    num_predict: int | None = None
    num_gpu: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    seed: int | None = None
    stop: list[str] | None = None

    def to_ollama(self) -> dict:
        return self.model_dump(exclude_none=True)

    def to_gemini(self) -> dict:
        config = {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.num_predict,
            "seed": self.seed,
            "stopSequences": self.stop,
        }
        return {k: v for k, v in config.items() if v is not None}
