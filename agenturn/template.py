from typing import Any, Callable, Mapping, Type

from jinja2 import Environment, Template, Undefined
from jinja2.defaults import TRIM_BLOCKS, LSTRIP_BLOCKS, KEEP_TRAILING_NEWLINE

from agenturn.context import ReadonlyContext


class InstructionEnvironment(Environment):
    """Jinja2 environment rendering agent instructions against the session state.

    State keys are exposed as top-level variables, the whole state as
    ``state``, and the running agent as ``agent_name``. Missing keys render
    empty unless ``undefined`` is made strict.
    """

    def __init__(
            self,
            trim_blocks: bool = TRIM_BLOCKS,
            lstrip_blocks: bool = LSTRIP_BLOCKS,
            keep_trailing_newline: bool = KEEP_TRAILING_NEWLINE,
            undefined: Type[Undefined] = Undefined,
            finalize: Callable[..., Any] | None = None,
            cache_size: int = 400):
        super().__init__(
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
            keep_trailing_newline=keep_trailing_newline,
            undefined=undefined,
            finalize=finalize,
            autoescape=False,
            cache_size=cache_size,
        )
        self._compiled: dict[str, Template] = {}

    def _template(self, source: str) -> Template:
        template = self._compiled.get(source)
        if template is None:
            template = self.from_string(source)
            self._compiled[source] = template
        return template

    def render_instruction(self, source: str, state: Mapping[str, Any], **extra: Any) -> str:
        if '{' not in source:
            return source
        variables = {**state, 'state': state, **extra}
        return self._template(source).render(**variables)


default_environment = InstructionEnvironment()


def render_instruction(source: str, ctx: ReadonlyContext, environment: InstructionEnvironment | None = None) -> str:
    """Render ``source`` with the state visible through ``ctx``."""
    environment = environment or default_environment
    return environment.render_instruction(source, ctx.state, agent_name=ctx.agent_name)
