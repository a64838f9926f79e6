from pathlib import Path
from setuptools import setup, find_packages

PROJECT_ROOT = Path(__file__).parent.resolve()
SCRIPTS_DIR = PROJECT_ROOT / "bin"

script_files = []
if SCRIPTS_DIR.exists():
    for path in sorted(SCRIPTS_DIR.iterdir()):
        if path.is_file() and path.suffix not in {".csv", ".json"}:
            script_files.append(str(path.relative_to(PROJECT_ROOT)))

setup(
    name="bindplane-aca",
    version="0.3.0",
    description="Render Bindplane manifests for Azure Container Apps and generate deploy.sh",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"bindplane_aca": ["templates/*.yaml"]},
    include_package_data=True,
    scripts=script_files,
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "rich>=13.0",
        "typer>=0.9",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
