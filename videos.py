import logging
from typing import Any, BinaryIO, Dict, List, Optional

from bson import ObjectId
from pydantic import ValidationError
from pymongo.database import Database

import media
from database import create_document, get_documents
from errors import InvalidRequest, NotFound, describe_validation_errors
from schemas import Video, VideoCreate

logger = logging.getLogger(__name__)


def public_video(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "video_path": doc.get("video_path"),
    }


def create_video(db: Database, title: Optional[str], description: Optional[str],
                 upload: Optional[BinaryIO], upload_name: Optional[str]) -> Dict[str, Any]:
    if upload is None or not upload_name or not title or not description:
        raise InvalidRequest("Title, description, and video file are required")
    try:
        fields = VideoCreate(title=title, description=description)
    except ValidationError as e:
        raise InvalidRequest("Invalid video details", details=describe_validation_errors(e.errors()))

    filename = media.save_upload(upload, upload_name)
    video = Video(**fields.model_dump(), video_path=media.public_path(filename))
    try:
        vid = create_document(db, "video", video)
    except Exception:
        media.remove_file(video.video_path)
        raise
    return public_video({"_id": vid, **video.model_dump()})


def list_videos(db: Database) -> List[Dict[str, Any]]:
    return [public_video(d) for d in get_documents(db, "video")]


def delete_video(db: Database, video_id: str) -> None:
    if not ObjectId.is_valid(video_id):
        raise InvalidRequest("Invalid video ID format")
    video = db["video"].find_one({"_id": ObjectId(video_id)})
    if not video:
        raise NotFound("Video not found")
    media.remove_file(video.get("video_path"))
    db["video"].delete_one({"_id": video["_id"]})
    logger.info("Deleted video %s", video_id)
