import mimetypes
import os

import structlog
from dotenv import load_dotenv
from invoke import Context, task

from photovault.config import Config
from photovault.handlers.upload import process_upload
from photovault.logging_config import configure_structured_logging
from photovault.services.auth import AuthService, UserInfo, create_auth_service
from photovault.services.ingestion import create_ingestion_service

logger = structlog.get_logger()

SUPPORTED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".heic", ".heif")
FALLBACK_MIME_TYPES = {".webp": "image/webp", ".heic": "image/heic", ".heif": "image/heif"}


def find_image_files(directory: str, recursive: bool = False) -> list[str]:
    """List files under ``directory`` with a supported image extension, sorted."""
    image_files = []
    if recursive:
        for root, _, files in os.walk(directory):
            for name in files:
                if os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                    image_files.append(os.path.join(root, name))
    else:
        for name in os.listdir(directory):
            path = os.path.join(directory, name)
            if os.path.isfile(path) and os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                image_files.append(path)
    return sorted(image_files)


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type is None:
        # Not every platform's mimetypes table knows WebP and HEIF
        mime_type = FALLBACK_MIME_TYPES.get(os.path.splitext(path)[1].lower())
    return mime_type or "application/octet-stream"


def cli_actor(user_id: str, config: Config | None = None) -> AuthService:
    """Actor resolver that always reports the given user."""
    auth_service = create_auth_service(config)
    auth_service.set_current_user(UserInfo(user_id=user_id, email=f"{user_id}@cli.local", role="user"))
    return auth_service


@task
def batch_upload(
    c: Context, directory: str, user_id: str, env_file: str = ".env", recursive: bool = False, dry_run: bool = False
):
    """
    Upload images from a local directory in batch.

    Args:
        c (Context): Invoke context.
        directory (str): Path to the directory containing images.
        user_id (str): The user ID that will own the uploads.
        env_file (str): Path to the environment file. Default is '.env'.
        recursive (bool): Search for images in subdirectories. Default is False.
        dry_run (bool): If True, lists files to be processed without uploading. Default is False.
    """
    if os.path.exists(env_file):
        load_dotenv(dotenv_path=env_file)
        logger.info("env_file_loaded", env_file=env_file)
    else:
        logger.warning("env_file_not_found", env_file=env_file)

    configure_structured_logging()

    if not os.path.isdir(directory):
        logger.error("directory_not_found", directory=directory)
        return

    logger.info("batch_process_started", directory=directory, user_id=user_id, recursive=recursive, dry_run=dry_run)

    image_files = find_image_files(directory, recursive=recursive)
    if not image_files:
        logger.warning("no_image_files_found", directory=directory)
        return

    logger.info("image_files_found", count=len(image_files))

    if dry_run:
        print("\n--- Dry Run Mode: Files to be processed ---")
        for file_path in image_files:
            print(f"- {file_path} ({guess_mime_type(file_path)})")
        print("--- End of Dry Run ---")
        return

    config = Config()
    actor = cli_actor(user_id, config)

    successful_uploads = 0
    failed_uploads = 0

    with create_ingestion_service(config) as service:
        for file_path in image_files:
            filename = os.path.basename(file_path)
            logger.info("processing_file", filename=filename)
            try:
                with open(file_path, "rb") as f:
                    file_data = f.read()
            except OSError as e:
                logger.error("file_read_failed", filename=filename, error=str(e))
                failed_uploads += 1
                continue

            result = process_upload(
                actor, service, {"filename": filename, "data": file_data, "mime_type": guess_mime_type(file_path)}
            )
            del file_data

            if result["success"]:
                logger.info("upload_successful", filename=filename)
                successful_uploads += 1
            else:
                logger.error(
                    "upload_failed", filename=filename, error_code=result["error_code"], message=result["message"]
                )
                failed_uploads += 1

    logger.info(
        "batch_upload_finished",
        successful=successful_uploads,
        failed=failed_uploads,
        total=len(image_files),
    )
    print(f"\nBatch upload complete. Successful: {successful_uploads}, Failed: {failed_uploads}")
