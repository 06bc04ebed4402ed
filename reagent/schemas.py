"""Request bodies for the JSON API (camelCase on the wire)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutRequest(CamelModel):
    project_id: str | None = None
    package: str | None = None


class ProjectRef(CamelModel):
    project_id: str | None = None


class Base64File(CamelModel):
    name: str
    type: str = ""
    data: str  # data URL: "data:image/jpeg;base64,...."


class PreUploadedImage(CamelModel):
    url: str
    filename: str | None = None


class CreateProjectRequest(CamelModel):
    project_name: str | None = None
    address: str | None = None
    global_instructions: str | None = None
    selected_package: str = "starter"
    uploaded_files: list[Base64File] = Field(default_factory=list)
    image_instructions: list[str] = Field(default_factory=list)
    is_free_trial: bool = False
    ai_description: str | None = None
    project_id: str | None = None
    is_adding_to_existing: bool = False
    pre_uploaded_images: list[PreUploadedImage] = Field(default_factory=list)


class GenerateDescriptionRequest(CamelModel):
    project_name: str | None = None
    address: str | None = None
    global_instructions: str | None = None
    image_count: int | None = None


class UpdateProjectRequest(CamelModel):
    name: str | None = None
    address: str | None = None
    global_instructions: str | None = None
    ai_description: str | None = None
    selected_images: list[str] | None = None


class TweakRequest(CamelModel):
    instruction: str = ""
