import logging

from pipecat.adapters.schemas.function_schema import FunctionSchema
from pipecat.adapters.schemas.tools_schema import ToolsSchema
from pipecat.frames.frames import CancelFrame, EndFrame, Frame, TranscriptionFrame
from pipecat.processors.frame_processor import FrameDirection, FrameProcessor

from pinpoint.bridge import ToolBridge, handle_tool_call
from pinpoint.completion import completion_status
from pinpoint.lifecycle import DraftManager
from pinpoint.prompts import get_system_prompt

logger = logging.getLogger(__name__)

LOOKUP_CUSTOMER = FunctionSchema(
    name="lookup_customer",
    description="Look up an existing customer by name as soon as the painter says it.",
    properties={
        "name": {"type": "string", "description": "Customer name as spoken"},
    },
    required=["name"],
)

GET_BUSINESS_CONFIG = FunctionSchema(
    name="get_business_config",
    description="Get the contractor's default hourly rate, markup, tax rate and hours per day.",
    properties={},
    required=[],
)


def tools_schema() -> ToolsSchema:
    return ToolsSchema(standard_tools=[LOOKUP_CUSTOMER, GET_BUSINESS_CONFIG])


def register_tools(llm, manager: DraftManager, bridge: ToolBridge) -> None:
    """Expose the tool bridge through the LLM service's function registry."""

    async def _lookup_customer(params):
        result = await handle_tool_call(manager, bridge, "lookup_customer", params.arguments)
        await params.result_callback(result)

    async def _get_business_config(params):
        result = await handle_tool_call(manager, bridge, "get_business_config", params.arguments)
        await params.result_callback(result)

    llm.register_function("lookup_customer", _lookup_customer)
    llm.register_function("get_business_config", _get_business_config)


class DraftProcessor(FrameProcessor):
    """Folds every spoken turn into the active draft.

    Sits between STT and the user context aggregator:
      transport.input() -> STT -> [DraftProcessor] -> context_aggregator.user() -> LLM -> TTS -> ...

    User turns arrive as TranscriptionFrames. Agent turns never pass through
    here, so they are read back from the LLM context's message list. After
    each turn the system prompt is refreshed with what is still missing.
    """

    def __init__(self, manager: DraftManager, context, **kwargs):
        super().__init__(**kwargs)
        self.manager = manager
        self.context = context
        self._context_capture_idx = 1  # Skip system message at index 0
        self._closed = False

    async def process_frame(self, frame: Frame, direction: FrameDirection):
        await super().process_frame(frame, direction)

        if isinstance(frame, TranscriptionFrame) and frame.text.strip():
            self._handle_transcription(frame.text.strip())
        elif isinstance(frame, (EndFrame, CancelFrame)):
            self.close_session()

        await self.push_frame(frame, direction)

    def _capture_agent_responses(self):
        while self._context_capture_idx < len(self.context.messages):
            msg = self.context.messages[self._context_capture_idx]
            content = msg.get("content")
            if msg.get("role") == "assistant" and isinstance(content, str) and content.strip():
                self.manager.ingest_turn("agent", content.strip())
            self._context_capture_idx += 1

    def _handle_transcription(self, text: str):
        self.manager.resume_or_create()
        self._capture_agent_responses()
        self.manager.ingest_turn("user", text)
        self.refresh_prompt()

    def refresh_prompt(self):
        draft = self.manager.active()
        if self.context.messages:
            self.context.messages[0]["content"] = get_system_prompt(draft)
        if draft is not None:
            status = completion_status(draft)
            logger.debug("[%s] %d%% complete, missing %s", draft.id, status.percent, status.missing)

    def close_session(self):
        """Capture trailing agent replies and run the final extraction pass."""
        if self._closed:
            return
        self._closed = True
        if self.manager.active() is None:
            return
        self._capture_agent_responses()
        self.manager.finish_session()
