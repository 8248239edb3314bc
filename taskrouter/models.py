from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    message: str = Field(default="", max_length=6000)


class ChatResponse(BaseModel):
    message: str


class CreateTaskRequest(BaseModel):
    text: str = Field(default="", max_length=6000)


class ConfirmationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recipient_email: str = Field(alias="recipientEmail")
    recipient_name: str = Field(alias="recipientName")
    subject: str
    body: str


class CredentialPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    refresh_token: str | None = None
    expiry_date: int | None = None
    token_type: str | None = None
    scope: str | None = None


class SendEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recipient_email: str = Field(default="", alias="recipientEmail", max_length=320)
    subject: str = Field(default="", max_length=998)
    body: str = Field(default="", max_length=20000)
    tokens: CredentialPayload | None = None


class SendEmailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    email_id: str = Field(alias="emailId")


class AuthUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(alias="authUrl")


class DepartmentResponse(BaseModel):
    name: str
    email: str
