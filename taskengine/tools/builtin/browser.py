"""Browser tool backed by the ``Browser`` capability."""

from typing import Literal

from pydantic import Field, field_validator

from ..models import SideEffectClass, ToolCall, ToolDescriptor, ToolOutput, ToolParameters


class BrowserActionParameters(ToolParameters):
    action: Literal["navigate"] = Field(default="navigate", description="Browser action to perform")
    url: str = Field(..., description="Absolute http(s) URL")
    timeout: int = Field(default=30, ge=1, le=120, description="Timeout in seconds")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v


async def browser_action(params: BrowserActionParameters, call: ToolCall) -> ToolOutput:
    """Fetch a page and return its title and visible text."""
    page = await call.platform.browser.navigate(params.url, timeout=float(params.timeout))
    header = f"{page.status} {page.url}"
    if page.title:
        header += f"\nTitle: {page.title}"
    return ToolOutput(
        text=f"{header}\n\n{page.text}" if page.text else header,
        metadata={"url": page.url, "status": page.status, "content_type": page.content_type},
    )


BROWSER_ACTION = ToolDescriptor(
    name="browser_action",
    description="Open a web page and return its title and text content.",
    parameter_model=BrowserActionParameters,
    side_effect_class=SideEffectClass.NETWORK,
    handler=browser_action,
)
