from polyfactory import Use
from polyfactory.factories.pydantic_factory import ModelFactory

from tsupport.models.chat import ChatCreate
from tsupport.models.message import MessageCreate, SenderRole


class ChatCreateFactory(ModelFactory[ChatCreate]):
    """Factory for ChatCreate schema."""

    __model__ = ChatCreate

    customer_id = Use(lambda: "CUST1")
    subject = Use(ModelFactory.__faker__.sentence, nb_words=4)
    customer_name = Use(ModelFactory.__faker__.name)


class MessageCreateFactory(ModelFactory[MessageCreate]):
    """Factory for MessageCreate schema."""

    __model__ = MessageCreate

    content = Use(ModelFactory.__faker__.sentence)
    sender_role = SenderRole.CUSTOMER
    attachment_url = None
    attachment_type = None
    attachment_name = None
