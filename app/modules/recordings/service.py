import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row
from app.modules.recordings.storage import (
    AudioStorage, chunk_path, combined_prefix, RECORDINGS_PREFIX
)

logger = logging.getLogger(__name__)

SPEAKERS = ("patient", "ai")


class RecordingService:
    def __init__(self, supabase: Client, storage: Optional[AudioStorage] = None):
        self.supabase = supabase
        self.storage = storage or AudioStorage(supabase)

    def upload_chunk(
        self,
        conversation_id: str,
        chunk_index: int,
        speaker: str,
        content: bytes,
        mime_type: Optional[str] = None,
        user_id: Optional[str] = None,
        intake_id: Optional[str] = None
    ) -> Dict[str, Any]:
        if not content:
            raise HTTPException(status_code=400, detail="No audio file provided")
        if not conversation_id:
            raise HTTPException(status_code=400, detail="Conversation ID is required")
        if chunk_index is None or chunk_index < 0:
            raise HTTPException(status_code=400, detail="Valid chunk index is required")
        if speaker not in SPEAKERS:
            raise HTTPException(status_code=400, detail='Invalid speaker value. Must be "patient" or "ai"')

        path = chunk_path(conversation_id, speaker, chunk_index)
        mime_type = mime_type or "audio/webm"
        try:
            existing = first_row(self.supabase.table("v18_audio_chunks")
                                 .select("id")
                                 .eq("conversation_id", conversation_id)
                                 .eq("chunk_index", chunk_index)
                                 .eq("speaker", speaker)
                                 .limit(1)
                                 .execute())
            if existing:
                return {
                    "success": True,
                    "message": "Chunk already uploaded",
                    "chunk_index": chunk_index,
                    "conversation_id": conversation_id,
                    "duplicate": True,
                }

            row = {
                "conversation_id": conversation_id,
                "chunk_index": chunk_index,
                "storage_path": path,
                "file_size": len(content),
                "mime_type": mime_type,
                "speaker": speaker,
                "user_id": user_id,
                "intake_id": intake_id,
            }
            try:
                self.storage.upload(path, content, mime_type)
            except Exception as e:
                self.supabase.table("v18_audio_chunks").insert({
                    **row, "status": "failed", "retry_count": 1
                }).execute()
                raise HTTPException(status_code=500, detail=f"Failed to upload audio chunk: {str(e)}")

            result = self.supabase.table("v18_audio_chunks").insert({**row, "status": "uploaded"}).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to record audio chunk")
            return {
                "success": True,
                "chunk_id": result.data[0].get("id"),
                "chunk_index": chunk_index,
                "storage_path": path,
                "file_size": len(content),
                "duplicate": False,
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def combine_chunks(self, conversation_id: str, speaker: Optional[str] = None) -> Dict[str, Any]:
        """Concatenate uploaded chunks in index order into one combined file"""
        if not conversation_id:
            raise HTTPException(status_code=400, detail="Conversation ID is required")
        try:
            query = self.supabase.table("v18_audio_chunks")\
                .select("*")\
                .eq("conversation_id", conversation_id)\
                .eq("status", "uploaded")
            if speaker:
                query = query.eq("speaker", speaker)
            chunks = query.order("chunk_index").execute().data or []
            if not chunks:
                raise HTTPException(status_code=404, detail="No audio chunks found for this conversation")

            parts: List[bytes] = []
            combined_ids = []
            for chunk in chunks:
                try:
                    parts.append(self.storage.download(chunk["storage_path"]))
                    combined_ids.append(chunk["id"])
                except Exception as e:
                    logger.warning(f"Skipping chunk {chunk.get('chunk_index')} of {conversation_id}: {e}")
            if not parts:
                raise HTTPException(status_code=500, detail="Failed to download any audio chunks")

            combined = b"".join(parts)
            path = f"{RECORDINGS_PREFIX}/{conversation_id}/{combined_prefix(speaker)}{int(time.time() * 1000)}.webm"
            try:
                self.storage.upload(path, combined, "audio/webm", upsert=True)
            except Exception as e:
                raise HTTPException(status_code=500, detail=f"Failed to upload combined audio: {str(e)}")

            self.supabase.table("v18_audio_chunks")\
                .update({"status": "combined"})\
                .in_("id", combined_ids)\
                .execute()
            logger.info(f"Combined {len(parts)}/{len(chunks)} chunks for {conversation_id} ({len(combined)} bytes)")
            return {
                "success": True,
                "combined_url": self.storage.public_url(path),
                "storage_path": path,
                "chunk_count": len(parts),
                "total_size": len(combined),
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_recordings(self, conversation_id: Optional[str] = None) -> Dict[str, Any]:
        try:
            if conversation_id:
                chunks = self.supabase.table("v18_audio_chunks")\
                    .select("*")\
                    .eq("conversation_id", conversation_id)\
                    .order("chunk_index")\
                    .execute().data or []
                with_urls = [
                    {
                        **chunk,
                        "signed_url": self.storage.signed_url(chunk["storage_path"]),
                        "public_url": self.storage.public_url(chunk["storage_path"]),
                    }
                    for chunk in chunks
                ]
                return {
                    "success": True,
                    "conversation_id": conversation_id,
                    "chunks": with_urls,
                    "total_chunks": len(with_urls),
                }

            rows = self.supabase.table("v18_audio_chunks")\
                .select("conversation_id, created_at")\
                .order("created_at", desc=True)\
                .execute().data or []
            grouped: Dict[str, Dict[str, Any]] = {}
            for row in rows:
                entry = grouped.get(row["conversation_id"])
                if entry:
                    entry["chunk_count"] += 1
                else:
                    grouped[row["conversation_id"]] = {
                        "conversation_id": row["conversation_id"],
                        "created_at": row.get("created_at"),
                        "chunk_count": 1,
                    }
            conversations = []
            for entry in grouped.values():
                combined = self.storage.latest_combined(entry["conversation_id"])
                if combined:
                    entry["combined_url"] = self.storage.signed_url(combined)
                conversations.append(entry)
            return {"success": True, "conversations": conversations, "total": len(conversations)}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch voice recordings: {str(e)}")
