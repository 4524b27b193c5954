"""Global configuration model providing the default build options.

ComposerConfig

`engine` (`str`)
: TeX program used when neither magic comments nor the settings file select
  one.

`output_format` (`"pdf" | "dvi" | "ps"`)
: Final output format requested from latexmk.

`producer` (`str`)
: DVI/PS to PDF converter used when the engine emits DVI or PostScript but a
  PDF is requested.

`output_directory` (`str`)
: Directory receiving the build artifacts, relative to the root document or
  absolute. Empty means "next to the source".

`clean_patterns` (`list[str]`)
: Glob patterns of generated files removed by `clean`. `{jobname}` expands to
  each job name; a leading `/` anchors the pattern at the project directory.

`enable_shell_escape`, `enable_synctex`, `enable_extended_build_mode` (`bool`)
: Flags forwarded to latexmk.

`move_result_to_source_directory` (`bool`)
: Move the final output (and its SyncTeX file) next to the source when an
  output directory is used.

`build_on_save` (`bool`)
: Trigger a build whenever the active document is saved.

`open_result_after_build`, `open_in_background` (`bool`)
: Viewer behaviour after a successful build.

`use_relative_paths` (`bool`)
: Pass the source path to latexmk relative to its working directory.

`use_dicy` (`bool`)
: Route builds through the monolithic DiCy backend instead of latexmk.

`opener` (`str`)
: Preferred viewer; `automatic` selects the first available one.

`okular_path`, `skim_path` (`str`)
: Locations of the Okular and Skim executables.

`logging_level` (`"error" | "warning" | "info"`)
: Least severe message level shown by the log sink.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

try:  # Python >=3.11
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # Python 3.10
    import tomli as tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .user_dir import get_user_dir


DEFAULT_CLEAN_PATTERNS: tuple[str, ...] = (
    "**/*.aux",
    "**/*.bbl",
    "**/*.blg",
    "**/*.fdb_latexmk",
    "**/*.fls",
    "**/*.ilg",
    "**/*.ind",
    "**/*.lof",
    "**/*.log",
    "**/*.lol",
    "**/*.lot",
    "**/*.nav",
    "**/*.out",
    "**/*.ps",
    "**/*.snm",
    "**/*.synctex.gz",
    "**/*.toc",
    "/**/_minted-{jobname}",
    "/missfont.log",
    "/texput.log",
    "/texput.aux",
)

OutputFormat = Literal["pdf", "dvi", "ps"]
LoggingLevel = Literal["error", "warning", "info"]
OpenerPreference = Literal["automatic", "okular", "skim", "preview", "xdg-open"]


class ComposerConfig(BaseModel):
    """User-level defaults for every build option plus runtime preferences."""

    model_config = ConfigDict(extra="forbid")

    engine: str = "pdflatex"
    output_format: OutputFormat = "pdf"
    producer: str = "dvipdfmx"
    output_directory: str = ""
    clean_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_CLEAN_PATTERNS))
    enable_shell_escape: bool = False
    enable_synctex: bool = True
    enable_extended_build_mode: bool = True
    move_result_to_source_directory: bool = True

    build_on_save: bool = False
    open_result_after_build: bool = True
    open_in_background: bool = True
    use_relative_paths: bool = False
    use_dicy: bool = False
    opener: OpenerPreference = "automatic"
    okular_path: str = "/usr/bin/okular"
    skim_path: str = "/Applications/Skim.app"
    logging_level: LoggingLevel = "warning"

    @field_validator("engine", "producer")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be empty")
        return stripped

    def dicy_user_options(self) -> dict[str, Any]:
        """Return the options handed to the DiCy engine as user-level settings."""
        options: dict[str, Any] = {
            "engine": self.engine,
            "outputFormat": self.output_format,
            "synctex": self.enable_synctex,
            "shellEscape": "enabled" if self.enable_shell_escape else "disabled",
            "cleanPatterns": list(self.clean_patterns),
        }
        if self.output_directory:
            options["outputDirectory"] = self.output_directory
        if self.output_format == "pdf" and self.producer:
            options["intermediatePostScript"] = self.producer == "ps2pdf"
        return options


def load_config(path: str | Path | None = None) -> ComposerConfig:
    """Load configuration from ``path`` or from the user directory.

    A missing file yields the defaults. Invalid TOML or values raise
    :class:`ConfigurationError`.
    """
    config_path = Path(path) if path is not None else get_user_dir().config_file
    if not config_path.exists():
        if path is not None:
            raise ConfigurationError(f"Configuration file '{config_path}' does not exist.")
        return ComposerConfig()

    try:
        payload = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Unable to read configuration '{config_path}': {exc}") from exc

    section = payload.get("texcompose", payload)
    try:
        return ComposerConfig.model_validate(section)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in '{config_path}': {exc}") from exc


__all__ = [
    "DEFAULT_CLEAN_PATTERNS",
    "ComposerConfig",
    "LoggingLevel",
    "OutputFormat",
    "load_config",
]
