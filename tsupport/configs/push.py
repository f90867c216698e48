from pydantic import BaseModel, Field


class PushConfig(BaseModel):
    """Web Push (VAPID) configuration.

    The dev defaults are a pre-generated key pair. Production MUST override
    them via ``TSUPPORT_Push_VapidPrivateKey`` / ``TSUPPORT_Push_VapidPublicKey``.
    """

    Enable: bool = Field(default=True, description="Enable Web Push notifications")

    VapidPrivateKey: str = Field(
        default="sgs4JDbRzKHx7rSQXCL_EF7rzNhaya_baP-NwVNKdaY",
        description="VAPID private key (URL-safe base64, 32-byte raw scalar)",
    )
    VapidPublicKey: str = Field(
        default="BEL5qcqsPF2Tce7054-Ou1StpkljqtT5i7MAQ_OjsTghmYlLPAcEaDOxr3Qxn79Dydhh1DdSrGLUrmLzc9Objcc",
        description="VAPID public key (URL-safe base64, 65-byte uncompressed EC point)",
    )
    VapidContactEmail: str = Field(default="support@example.com", description="VAPID contact email (mailto:...)")

    Title: str = Field(default="Support Chat", description="Notification title shown by the browser")
    CustomerUrl: str = Field(default="/a/client", description="Page opened when a customer taps a notification")
    AgentUrl: str = Field(default="/a/dashboard", description="Page opened when an agent taps a notification")
    PreviewLength: int = Field(default=120, description="Max characters of message text in the push body")
