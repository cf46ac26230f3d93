"""
Page layout schemas.

Pages are served as view models: the role's layout shell plus the page
content.
"""

from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class NavItem(BaseModel):
    name: str
    href: str
    icon: str
    active: bool = False


class Sidebar(BaseModel):
    title: str
    home: str
    items: List[NavItem]


class Header(BaseModel):
    user_id: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    image: Optional[str] = None
    unread_notifications: int = 0


class PageLayout(BaseModel):
    sidebar: Sidebar
    header: Header


class Page(BaseModel):
    page: str
    layout: Optional[PageLayout] = None
    content: Dict[str, Any] = {}
