from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

class Settings(BaseSettings):
    # Layout, relative paths resolve against project_dir
    project_dir: Path = Path(".")
    tree_dir: Path = Path("rust-src")
    patch_file: Path = Path("rust-src.patch")
    checker_dir: Path = Path("rustfmt-syntax")

    # External tools
    vcs_program: str = "git"
    build_program: str = "cargo"
    build_args: List[str] = ["build"]
    run_args: List[str] = ["run", "libsyntax", "libsyntax", "librustc_parse"]
    checker_program: str = "cargo"
    checker_args: List[str] = ["check"]

    # Execution settings
    step_timeout: Optional[float] = None  # No timeout by default
    capture_output: bool = True

    pipeline_file: Optional[Path] = None
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "PATCHRUN_"

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the project directory."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return (Path(self.project_dir).expanduser() / path).resolve()

@lru_cache()
def get_settings() -> Settings:
    return Settings()
