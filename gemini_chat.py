import logging
from typing import Optional

import google.genai as genai
from google.genai import types

from alarms.dispatcher import CommandDispatcher, build_instructions, function_declarations

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 5


class GeminiChatClient:
    """Text chat with Gemini where alarm functions run through the dispatcher."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        model_name: str,
        system_prompt: str,
        api_key: Optional[str] = None,
        client=None,
    ):
        self.dispatcher = dispatcher
        self.model_name = model_name
        self.client = client or genai.Client(api_key=api_key)
        config = types.GenerateContentConfig(
            system_instruction=f"{system_prompt}\n\n{build_instructions()}",
            tools=[types.Tool(function_declarations=function_declarations())],
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        self.chat = self.client.chats.create(model=model_name, config=config)
        logger.info("Gemini chat ready (model=%s)", model_name)

    def send_text(self, text: str) -> str:
        response = self.chat.send_message(text)
        for _ in range(MAX_TOOL_ROUNDS):
            calls = response.function_calls or []
            if not calls:
                break
            parts = []
            for call in calls:
                result = self.dispatcher.dispatch(call.name, dict(call.args or {}))
                output = result.response_text if result.handled else f"Unknown function {call.name}."
                parts.append(types.Part.from_function_response(name=call.name, response={"result": output}))
            response = self.chat.send_message(parts)
        if response.function_calls:
            logger.warning("Stopped after %s tool rounds", MAX_TOOL_ROUNDS)
        return response.text or ""
