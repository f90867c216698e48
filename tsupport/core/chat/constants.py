AGENT_JOINED = "{agent} has joined the chat"
AGENT_LEFT = "{agent} has left the chat. Waiting for an agent..."
CLOSED_BY_AGENT = "Chat closed by agent"
ENDED_BY_CUSTOMER = "Chat ended by customer"
ATTACHMENT_SENT = "Sent a file: {name}"

DEFAULT_AGENT_NAME = "Agent"

RATING_MIN = 1
RATING_MAX = 5
