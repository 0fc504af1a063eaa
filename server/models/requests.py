from pydantic import BaseModel, ConfigDict, Field


class BotCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    description: str = ""
    initial_context: str = Field(default="", alias="initialContext")


class BotUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    description: str | None = None
    initial_context: str | None = Field(default=None, alias="initialContext")
    # ids of the bot's existing files, in the new order
    context_file_ids: list[str] | None = Field(default=None, alias="contextFileIds")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    bot_id: str = Field(default="", alias="botId")
