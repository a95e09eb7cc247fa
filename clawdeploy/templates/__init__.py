from .renderer import (
    AGENT_TEMPLATE_VARIABLES,
    PLATFORM_TEMPLATE_VARIABLES,
    render_template,
    render_tree,
    cleanup_generated,
    find_templates,
)
from .overlays import OverlayWriter
