from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    docker_base_url: Optional[str] = None
    docker_client_timeout: int = 60

    evaluator_image_prefix: str = "coursemology/evaluator-image-"
    evaluator_pull_missing_images: bool = True

    evaluator_home_path: str = "/home/coursemology"
    evaluator_package_dir: str = "package"
    evaluator_report_file: str = "report.xml"

    evaluator_chunk_size: int = 1048576

    # None blocks until the container exits; limits are enforced by the image entrypoint
    evaluator_wait_timeout_seconds: Optional[int] = None

    # Package Validation
    evaluator_validate_packages: bool = True
    # Unset limits are not enforced; path safety is always checked
    evaluator_max_files: Optional[int] = None
    evaluator_max_file_size_mb: Optional[float] = None
    evaluator_max_total_size_mb: Optional[float] = None

    class Config:
        env_prefix = ""
        env_file = ".env"
        extra = "ignore"

    @property
    def package_path(self) -> str:
        """Directory the package is extracted to inside the container"""
        return f"{self.evaluator_home_path.rstrip('/')}/{self.evaluator_package_dir}"

    @property
    def report_path(self) -> str:
        return f"{self.package_path}/{self.evaluator_report_file}"


config = Settings()
