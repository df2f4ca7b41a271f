from pathlib import Path
import os
import sys
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional
from jinja2 import Template


# ─── Config Schema ─────────────────────────────────────────────────
class UIConfig(BaseModel):
    theme: str = Field("dark", pattern="^(dark|light)$")
    start_view: str = Field(
        "planner",
        pattern="^(notes|planner|journal|habits|finance|calories|kanban|flashcards)$",
    )


class EditorConfig(BaseModel):
    undo_limit: int = Field(200, ge=1, le=10_000)
    tab_width: int = Field(4, ge=1, le=16)


class StorageConfig(BaseModel):
    # empty string means the platform default data directory
    data_dir: str = ""
    max_file_size_mb: int = Field(50, ge=1, le=50)


class MynotesConfig(BaseModel):
    title: str = "Mynotes Configuration"
    ui: UIConfig = UIConfig()
    editor: EditorConfig = EditorConfig()
    storage: StorageConfig = StorageConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[ui]
# theme: str = 'dark' | 'light'
theme = "{{ ui.theme }}"

# start_view: the view shown when the interface opens
# notes | planner | journal | habits | finance | calories | kanban | flashcards
start_view = "{{ ui.start_view }}"

[editor]
# undo_limit: int = number of buffer snapshots kept for undo (and redo)
undo_limit = {{ editor.undo_limit }}

# tab_width: int = spaces inserted by the tab key
tab_width = {{ editor.tab_width }}

[storage]
# data_dir: str = directory holding the yearly snapshot files.
# Leave empty to use $MYNOTES_DATA, $XDG_DATA_HOME/mynotes or
# ~/.local/share/mynotes.
data_dir = "{{ storage.data_dir }}"

# max_file_size_mb: int = snapshots larger than this are neither written
# nor read. 50 is the ceiling.
max_file_size_mb = {{ storage.max_file_size_mb }}
"""

# ─── Save Config with Comments ───────────────────────────────


def save_config_from_template(config: MynotesConfig, path: Path):
    template = Template(CONFIG_TEMPLATE)
    rendered = template.render(**config.model_dump())
    path.write_text(rendered.strip() + "\n", encoding="utf-8")
    print(f"✅ Config with comments written to: {path}", file=sys.stderr)


# ─── Main Environment Class ───────────────────────────────


class MynotesEnvironment:
    def __init__(self):
        self._home = self._resolve_home()
        self._config: Optional[MynotesConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def data_dir(self) -> Path:
        configured = self.config.storage.data_dir.strip()
        if configured:
            return Path(configured).expanduser()
        return self._resolve_data_dir()

    @property
    def max_file_size(self) -> int:
        return self.config.storage.max_file_size_mb * 1024 * 1024

    def ensure(self, init_config: bool = True):
        self.home.mkdir(parents=True, exist_ok=True)

        if init_config and not self.config_path.exists():
            save_config_from_template(MynotesConfig(), self.config_path)

    def load_config(self) -> MynotesConfig:
        # Step 1: Create the file if it doesn't exist
        if not os.path.exists(self.config_path):
            config = MynotesConfig()
            self.home.mkdir(parents=True, exist_ok=True)
            template = Template(CONFIG_TEMPLATE)
            rendered = template.render(**config.model_dump()).strip() + "\n"
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(rendered)
            print(f"✅ Created new config file at {self.config_path}", file=sys.stderr)
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = MynotesConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            print(
                f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.",
                file=sys.stderr,
            )
            config = MynotesConfig()

        # Step 3: Always regenerate the canonical version
        template = Template(CONFIG_TEMPLATE)
        rendered = template.render(**config.model_dump()).strip() + "\n"

        with open(self.config_path, "r", encoding="utf-8") as f:
            current_text = f.read()

        if rendered != current_text:
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(rendered)
            print(
                f"✅ Updated {self.config_path} with any missing defaults.",
                file=sys.stderr,
            )

        self._config = config
        return config

    @property
    def config(self) -> MynotesConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists() and (cwd / "logs").is_dir():
            return cwd

        env_home = os.getenv("MYNOTES_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "mynotes"
        else:
            return Path.home() / ".config" / "mynotes"

    def _resolve_data_dir(self) -> Path:
        env_data = os.getenv("MYNOTES_DATA")
        if env_data:
            return Path(env_data).expanduser()

        xdg_data = os.getenv("XDG_DATA_HOME")
        if xdg_data:
            return Path(xdg_data).expanduser() / "mynotes"
        else:
            return Path.home() / ".local" / "share" / "mynotes"
