import inspect
from typing import Any, Callable

from pydantic import BaseModel, Field

from ollie.message import ToolCall


class ToolCallResult(BaseModel):
    tool_name: str
    output: Any


class Tool(BaseModel):
    """A Python callable declared to the model as a function tool.

    The session never runs tools itself.  Callers look up the tool named
    in a :class:`~ollie.message.ToolCall`, run it with :meth:`invoke`, and
    append the result to the transcript.
    """

    func: Callable = Field(exclude=True)
    name: str
    description: str = ""
    model_config = {"arbitrary_types_allowed": True}

    def __init__(self, func: Callable, **kwargs):
        super().__init__(
            func=func,
            name=kwargs.pop("name", func.__name__),
            description=kwargs.pop("description", inspect.getdoc(func) or ""),
            **kwargs,
        )

    def normalize_to_json_type(self, annotation: Any) -> str:
        type_mapping = {
            'str': 'string',
            'int': 'integer',
            'float': 'number',
            'bool': 'boolean',
            'NoneType': 'null',
            'dict': 'object',
            'list': 'array',
            'tuple': 'array',
            'set': 'array',
        }
        name = getattr(annotation, "__name__", str(annotation))
        return type_mapping.get(name, 'string')

    def parameters(self) -> dict:
        """JSON schema for the callable's parameters."""
        signature = inspect.signature(self.func)
        properties = {}
        required = []
        for param_name, param in signature.parameters.items():
            annotation = param.annotation
            if annotation is inspect.Parameter.empty:
                annotation = str
            properties[param_name] = {"type": self.normalize_to_json_type(annotation)}
            if param.default is inspect.Parameter.empty:
                required.append(param_name)
        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def ollama_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters(),
            },
        }

    def gemini_declaration(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters(),
        }

    def invoke(self, call: ToolCall) -> ToolCallResult:
        return self(**call.arguments)

    def __call__(self, *args, **kwargs) -> ToolCallResult:
        return ToolCallResult(tool_name=self.name, output=self.func(*args, **kwargs))


def tool(func: Callable) -> Tool:
    """Decorator form of :class:`Tool`."""
    return Tool(func)
