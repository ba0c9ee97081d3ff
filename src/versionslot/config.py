import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import NamedTuple, Dict, Any, ChainMap, Mapping, Iterable

from versionslot.controller import ConcurrencyController, DEFAULT_COMMIT_MESSAGE
from versionslot.errors import ConfigError
from versionslot.keys import KeyProvisioner
from versionslot.stores.git import GitStore, DEFAULT_USER_NAME, DEFAULT_USER_EMAIL
from versionslot.stores.github import GitHubStore, DEFAULT_API_URL
from versionslot.version import Version

ENV_PREFIX = "VERSIONSLOT_"


class Option(NamedTuple):
    key: str
    default: Any
    help: str = ""


class Settings:
    DRIVER = Option("driver", "git", "Where the version is stored: git or github")
    URI = Option("uri", None, "Repository to clone (git driver)")
    BRANCH = Option("branch", "main", "Branch holding the version file")
    FILE = Option("file", "version", "Path of the version file within the repository")
    PRIVATE_KEY = Option("private_key", None, "SSH private key used for git (no passphrase)")
    INITIAL_VERSION = Option("initial_version", "0.0.0", "Version reported/bumped when the file does not exist")
    WORK_DIR = Option("work_dir", None, "Local clone location (default: per repository under the temp dir)")
    KEY_PATH = Option("key_path", None, "Where the private key is written (default: next to work_dir)")
    COMMIT_MESSAGE = Option("commit_message", DEFAULT_COMMIT_MESSAGE, "Commit message, {version} and {file} are replaced")
    GIT_USER_NAME = Option("git_user_name", DEFAULT_USER_NAME, "Committer name")
    GIT_USER_EMAIL = Option("git_user_email", DEFAULT_USER_EMAIL, "Committer email")
    REPOSITORY = Option("repository", None, "owner/name of the repository (github driver)")
    TOKEN = Option("token", None, "API token (github driver)")
    API_URL = Option("api_url", DEFAULT_API_URL, "GitHub API base url (github driver)")
    LOG_LEVEL = Option("log_level", "INFO", "Logging level")


DRIVERS = ("git", "github")
_REQUIRED = {
    "git": (Settings.URI,),
    "github": (Settings.REPOSITORY,),
}


def get_all_settings() -> list[Option]:
    return [option for _name, option in vars(Settings).items() if isinstance(option, Option)]


def _settings_by_key() -> Dict[str, Option]:
    return {option.key: option for option in get_all_settings()}


def create_config(*dicts: Mapping[str, object]) -> Mapping[str, object]:
    """Creates a dict-like configuration from multiple dictionaries
    Priority order:
    1. command-line overrides
    2. environment variables
    3. config file
    4. default values
    """
    defaults = {option.key: option.default for option in get_all_settings() if option.default is not None}
    return ChainMap({}, *dicts, defaults)


def conf_get(d, option: Option):
    return d.get(option.key, option.default)


def read_config(config_name) -> Dict[str, object]:
    config_file = Path(os.getcwd()) / config_name
    try:
        with open(config_file, encoding="utf-8") as fp:
            config_dict = json.load(fp)
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_file}: {e.strerror}") from e
    except ValueError as e:
        raise ConfigError(f"Config file {config_file} is not valid JSON: {e}") from e
    if not isinstance(config_dict, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")
    return config_dict


def coerce_value(raw: str) -> object:
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if raw.strip().startswith(("{", "[")):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ConfigError(f"Invalid JSON value: {raw}") from e
    return raw


def parse_cli_overrides(overrides: Iterable[str]) -> Dict[str, object]:
    known = _settings_by_key()
    result = {}
    for item in overrides or []:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"Invalid override (expected key=value): {item}")
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")
        result[key] = coerce_value(raw)
    return result


def parse_env_overrides(environ: Mapping[str, str]) -> Dict[str, object]:
    result = {}
    for key in _settings_by_key():
        env_key = ENV_PREFIX + key.upper()
        if env_key in environ:
            result[key] = coerce_value(environ[env_key])
    return result


def default_work_dir(conf: Mapping[str, object]) -> Path:
    slot = f"{conf_get(conf, Settings.URI) or conf_get(conf, Settings.REPOSITORY)}#{conf_get(conf, Settings.BRANCH)}"
    digest = hashlib.sha1(slot.encode("utf-8")).hexdigest()[:12]
    return Path(tempfile.gettempdir()) / f"versionslot-{digest}" / "repo"


def build_controller(conf: Mapping[str, object]) -> ConcurrencyController:
    driver = conf_get(conf, Settings.DRIVER)
    if driver not in DRIVERS:
        raise ConfigError(f"Unknown driver: {driver} (expected one of {', '.join(DRIVERS)})")
    missing = [option.key for option in _REQUIRED[driver] if not conf_get(conf, option)]
    if missing:
        raise ConfigError(f"Missing required setting(s) for {driver} driver: {', '.join(missing)}")

    try:
        initial_version = Version.parse(str(conf_get(conf, Settings.INITIAL_VERSION)))
    except ValueError as e:
        raise ConfigError(f"Invalid initial_version: {e}") from e

    branch = conf_get(conf, Settings.BRANCH)
    provisioner = None
    if driver == "git":
        work_dir = Path(conf_get(conf, Settings.WORK_DIR) or default_work_dir(conf))
        key_path = Path(conf_get(conf, Settings.KEY_PATH) or work_dir.parent / "private-key")
        provisioner = KeyProvisioner(key_path)
        store = GitStore(
            uri=conf_get(conf, Settings.URI),
            branch=branch,
            work_dir=work_dir,
            env=provisioner.env,
            user_name=conf_get(conf, Settings.GIT_USER_NAME),
            user_email=conf_get(conf, Settings.GIT_USER_EMAIL),
        )
    else:
        store = GitHubStore(
            repository=conf_get(conf, Settings.REPOSITORY),
            branch=branch,
            token=conf_get(conf, Settings.TOKEN),
            api_url=conf_get(conf, Settings.API_URL),
        )

    return ConcurrencyController(
        store=store,
        file=conf_get(conf, Settings.FILE),
        initial_version=initial_version,
        provisioner=provisioner,
        private_key=conf_get(conf, Settings.PRIVATE_KEY),
        commit_message=conf_get(conf, Settings.COMMIT_MESSAGE),
    )
