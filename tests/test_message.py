import unittest

from message import Message


class MessageTests(unittest.TestCase):
    def setUp(self):
        self.message = Message(channel="#general", botname="trellobot", text="trello show")
        self.replies = []
        self.message.on_reply(self.replies.append)

    def test_send_wraps_string_in_default_envelope(self):
        self.message.send("hello")

        self.assertEqual(
            [
                {
                    "channel": "#general",
                    "username": "trellobot",
                    "link_names": 1,
                    "parse": "full",
                    "unfurl_links": True,
                    "text": "hello",
                }
            ],
            self.replies,
        )

    def test_send_payload_overrides_defaults(self):
        self.message.send({"channel": "#other", "unfurl_links": False, "text": "hi"})

        reply = self.replies[0]
        self.assertEqual("#other", reply["channel"])
        self.assertFalse(reply["unfurl_links"])
        self.assertEqual("trellobot", reply["username"])
        self.assertEqual("full", reply["parse"])
        self.assertEqual(1, reply["link_names"])

    def test_done_sends_reply_then_closes(self):
        self.message.done("bye")
        self.message.send("ignored")

        self.assertEqual(1, len(self.replies))
        self.assertEqual("bye", self.replies[0]["text"])
        self.assertTrue(self.message.closed)

    def test_done_without_reply_only_closes(self):
        self.message.done()
        self.message.send("ignored")

        self.assertEqual([], self.replies)
        self.assertTrue(self.message.closed)

    def test_done_twice_is_harmless(self):
        self.message.done("once")
        self.message.done("twice")

        self.assertEqual(["once"], [reply["text"] for reply in self.replies])

    def test_subscribing_after_close_has_no_effect(self):
        self.message.done()
        late = []
        self.message.on_reply(late.append)
        self.message.send("ignored")

        self.assertEqual([], late)

    def test_send_without_subscriber_is_noop(self):
        message = Message(channel="#general", botname="trellobot", text="")

        message.send("nobody listens")

        self.assertFalse(message.closed)
