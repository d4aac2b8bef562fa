from datetime import datetime
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape


_TEMPLATES_DIR = Path(__file__).parent / "templates"
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


def render_invite_email(
    recipient_email: str,
    inviter_name: str,
    inviter_email: str,
    workspace_name: str,
    role: str,
    company_name: Optional[str],
    product_name: str,
    accept_url: str,
    expires_at: datetime,
) -> str:
    """
    Render the workspace invitation email HTML body from template.
    """
    template = _env.get_template("invite.html")
    return template.render(
        recipient_email=recipient_email,
        inviter_name=inviter_name,
        inviter_email=inviter_email,
        workspace_name=workspace_name,
        role=role,
        company_name=company_name or product_name,
        product_name=product_name,
        accept_url=accept_url,
        expires_on=expires_at.strftime("%B %d, %Y"),
    )
