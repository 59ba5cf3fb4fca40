"""
Configuration Loader

Credentials and runtime settings come from the environment (or .env).
Report options come from an optional YAML file with environment variable
substitution, overridden by command-line values.
"""

import os
import re
from typing import Any, List, Optional, Union
from datetime import date, datetime
from pathlib import Path

import yaml
import structlog
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .schemas.models import ReplaceRule, TagFilterSet
from .schemas.request import ReportRequest, PublishTarget
from .tools.title_normalizer import parse_replace_rule, build_replace_rule

logger = structlog.get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"


class Settings(BaseSettings):
    """
    Environment settings.

    Reads PD_AUTH_TOKEN, DD_API_KEY, ... and a .env file if present.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # PagerDuty
    pd_auth_token: Optional[str] = None

    # Datadog
    dd_api_key: Optional[str] = None
    dd_app_key: Optional[str] = None
    dd_site: str = "datadoghq.com"

    # Confluence
    confluence_subdomain: Optional[str] = None
    confluence_username: Optional[str] = None
    confluence_token: Optional[str] = None

    # Runtime
    http_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    log_format: str = "console"
    incidentist_config: Optional[str] = None


def _substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute environment variables in configuration.

    Supports format: ${VAR_NAME:-default_value}
    """
    if isinstance(value, str):
        # Pattern: ${VAR:-default} or ${VAR}
        pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

        def replace(match):
            var_name = match.group(1)
            default = match.group(2) if match.group(2) is not None else ""
            return os.getenv(var_name, default)

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]

    return value


class ReplaceRuleConfig(BaseModel):
    """Replace rule spelled out as a mapping"""
    pattern: str
    replacement: str = ""


class ConfluenceConfig(BaseModel):
    """Publish destination"""
    space_key: Optional[str] = None
    parent_id: Optional[str] = None


class FileConfig(BaseModel):
    """Report options from the YAML config file"""
    teams: List[str] = Field(default_factory=list)
    pd_teams: List[str] = Field(default_factory=list)
    urgency: str = "high"
    # Order matters: each rule rewrites the previous rule's output
    replace: List[Union[str, ReplaceRuleConfig]] = Field(default_factory=list)
    tag_filters: List[str] = Field(default_factory=list)
    match_team: Optional[str] = None
    confluence: ConfluenceConfig = Field(default_factory=ConfluenceConfig)


def load_file_config(config_path: Optional[str] = None) -> FileConfig:
    """
    Load report options from a YAML file.

    Args:
        config_path: Path to config file. If None, no file is read.

    Returns:
        Parsed FileConfig (defaults when no path is given)

    Raises:
        ConfigurationError: if the file is missing or invalid
    """
    if config_path is None:
        return FileConfig()

    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    logger.info("Loading configuration", path=str(path))

    try:
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    # Substitute environment variables
    config_data = _substitute_env_vars(raw_config)

    try:
        return FileConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e


def parse_report_date(value: str, flag: str) -> date:
    """Parse a YYYY-MM-DD date"""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Failed to parse --{flag}: {e}") from e


def parse_dates(since: str, until: str) -> tuple[date, date]:
    """Parse and validate the report range"""
    since_at = parse_report_date(since, "since")
    until_at = parse_report_date(until, "until")
    if until_at < since_at:
        raise ConfigurationError(
            f"--since must start before --until. --since: {since}, --until: {until}"
        )
    return since_at, until_at


def _build_rules(replace: List[Union[str, ReplaceRuleConfig]]) -> tuple[ReplaceRule, ...]:
    rules = []
    for rule in replace:
        if isinstance(rule, ReplaceRuleConfig):
            rules.append(build_replace_rule(rule.pattern, rule.replacement))
        else:
            rules.append(parse_replace_rule(rule))
    return tuple(rules)


def build_request(options: dict[str, Any], file_config: Optional[FileConfig] = None) -> ReportRequest:
    """
    Build the immutable report request.

    Command-line options win over the config file; a list given on the
    command line replaces the file's list.

    Args:
        options: Command-line values (None or missing when not given)
        file_config: Options from the YAML file

    Raises:
        ConfigurationError: on any invalid or missing option
    """
    file_config = file_config or FileConfig()

    teams = options.get("team") or file_config.teams
    if not teams:
        raise ConfigurationError("missing team (--team or 'teams' in config)")

    if not options.get("since") or not options.get("until"):
        raise ConfigurationError("missing report range (--since and --until)")
    since_at, until_at = parse_dates(options["since"], options["until"])

    replace = options.get("replace") or file_config.replace
    tag_filters = options.get("tag_filter") or file_config.tag_filters

    publish = None
    if options.get("publish"):
        space_key = options.get("space_key") or file_config.confluence.space_key
        if not space_key:
            raise ConfigurationError("missing Confluence space (--space-key or 'confluence.space_key')")
        publish = PublishTarget(
            space_key=space_key,
            parent_id=options.get("parent_id") or file_config.confluence.parent_id,
        )

    request = ReportRequest(
        teams=tuple(t.lower() for t in teams),
        pd_teams=tuple(options.get("pd_team") or file_config.pd_teams),
        since=since_at,
        until=until_at,
        urgency=options.get("urgency") or file_config.urgency,
        replace_rules=_build_rules(replace),
        tag_filters=TagFilterSet.from_tokens(tag_filters),
        match_team=options.get("match_team") or file_config.match_team,
        publish=publish,
    )

    logger.info(
        "Report request built",
        teams=list(request.teams),
        pagerduty_teams=list(request.pagerduty_teams),
        since=str(request.since),
        until=str(request.until),
        replace_rules=len(request.replace_rules),
        tag_filters=sorted(request.tag_filters.tags),
        publish=request.wants_publish,
    )
    return request


def check_credentials(settings: Settings, request: ReportRequest) -> None:
    """
    Make sure every source the run will contact has credentials.

    Raises:
        ConfigurationError: naming the missing settings
    """
    missing = []
    if not settings.pd_auth_token:
        missing.append("PD_AUTH_TOKEN (or --auth)")
    if not settings.dd_api_key:
        missing.append("DD_API_KEY")
    if not settings.dd_app_key:
        missing.append("DD_APP_KEY")
    if request.wants_publish:
        for name in ("confluence_subdomain", "confluence_username", "confluence_token"):
            if not getattr(settings, name):
                missing.append(name.upper())

    if missing:
        raise ConfigurationError(f"missing credentials: {', '.join(missing)}")
