from types import SimpleNamespace

from gemini_chat import GeminiChatClient
from alarms.dispatcher import CommandDispatcher


class FakeChat:
    def __init__(self, responses):
        self.responses = list(responses)
        self.sent = []

    def send_message(self, message):
        self.sent.append(message)
        return self.responses.pop(0)


class FakeClient:
    def __init__(self, chat):
        self.chat = chat
        self.chats = SimpleNamespace(create=self._create)
        self.created_with = None

    def _create(self, model, config):
        self.created_with = (model, config)
        return self.chat


def _call(name, args):
    return SimpleNamespace(name=name, args=args)


def test_function_calls_run_through_dispatcher(manager):
    chat = FakeChat(
        [
            SimpleNamespace(function_calls=[_call("create_alarm", {"cron": "0 9 * * *", "name": "Wake up"})], text=None),
            SimpleNamespace(function_calls=None, text="Done, alarm #1 set for 9am."),
        ]
    )
    client = FakeClient(chat)
    gemini = GeminiChatClient(CommandDispatcher(manager), "test-model", "prompt", client=client)

    reply = gemini.send_text("wake me up at 9 every day")

    assert reply == "Done, alarm #1 set for 9am."
    assert chat.sent[0] == "wake me up at 9 every day"
    function_response = chat.sent[1][0].function_response
    assert function_response.name == "create_alarm"
    assert function_response.response["result"].startswith('Alarm "Wake up" #1 has been scheduled.')
    model, config = client.created_with
    assert model == "test-model"
    assert "cron expressions" in config.system_instruction
    assert "Wake up" in manager.get_alarms()


def test_plain_reply_without_calls(manager):
    chat = FakeChat([SimpleNamespace(function_calls=[], text="Hi!")])
    gemini = GeminiChatClient(CommandDispatcher(manager), "m", "p", client=FakeClient(chat))
    assert gemini.send_text("hello") == "Hi!"
