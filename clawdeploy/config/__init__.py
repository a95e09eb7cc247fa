from .env_file import (
    DeployEnv,
    load_env,
    write_env,
    persist_agent_name,
    generate_secret,
    generate_cookie_secret,
    slugify_agent_name,
    sanitize_prefix,
    select_agent_model,
)
from .layout import RepoLayout
