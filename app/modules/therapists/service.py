import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.database.supabase_client import first_row
from app.modules.therapists.schemas import (
    TherapistSummary, TherapistSearchResponse,
    ProviderNotificationPreferences, ProviderNotificationPreferencesUpdate, AdminTherapist,
    TherapistProfileRequest, CompleteProfileRequest
)

logger = logging.getLogger(__name__)

BROWSE_LIMIT = 20

PROFILE_COLUMNS = (
    "id, user_id, full_name, title, degrees, primary_location, gender_identity, "
    "years_of_experience, languages_spoken, created_at"
)

# s2_complete_profiles column -> camelCase field on the detailed view
COMPLETE_PROFILE_FIELDS = {
    "profile_photo_url": "profilePhotoUrl",
    "personal_statement": "personalStatement",
    "mental_health_specialties": "mentalHealthSpecialties",
    "treatment_approaches": "treatmentApproaches",
    "age_ranges_treated": "ageRangesTreated",
    "practice_type": "practiceType",
    "session_length": "sessionLength",
    "availability_hours": "availabilityHours",
    "emergency_protocol": "emergencyProtocol",
    "accepts_insurance": "acceptsInsurance",
    "insurance_plans": "insurancePlans",
    "out_of_network_supported": "outOfNetworkSupported",
    "client_types_served": "clientTypesServed",
    "lgbtq_affirming": "lgbtqAffirming",
    "religious_spiritual_integration": "religiousSpiritualIntegration",
    "session_fees": "sessionFees",
    "board_certifications": "boardCertifications",
    "professional_memberships": "professionalMemberships",
}

# shown under practiceDetails / insuranceInformation instead of top level
COMPLETE_NESTED_COLUMNS = (
    "practice_type", "session_length", "availability_hours", "emergency_protocol",
    "accepts_insurance", "insurance_plans", "out_of_network_supported",
)

COMPLETE_OTHER_FIELDS = {
    "other_mental_health_specialty": "otherMentalHealthSpecialty",
    "other_treatment_approach": "otherTreatmentApproach",
    "other_religious_spiritual_integration": "otherReligiousSpiritualIntegration",
    "other_board_certification": "otherBoardCertification",
    "other_professional_membership": "otherProfessionalMembership",
}

BASIC_PROFILE_FIELDS = {
    "full_name": "fullName",
    "degrees": "degrees",
    "primary_location": "primaryLocation",
    "offers_online": "offersOnline",
    "phone_number": "phoneNumber",
    "email_address": "emailAddress",
    "cloned_voice_id": "clonedVoiceId",
    "gender_identity": "genderIdentity",
    "years_of_experience": "yearsOfExperience",
    "languages_spoken": "languagesSpoken",
    "cultural_backgrounds": "culturalBackgrounds",
    "other_degree": "otherDegree",
    "other_title": "otherTitle",
    "other_language": "otherLanguage",
    "other_cultural_background": "otherCulturalBackground",
}


def profile_view(profile: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": profile["id"],
        "userId": profile.get("user_id"),
        "fullName": profile.get("full_name"),
        "title": profile.get("title"),
        "degrees": profile.get("degrees") or [],
        "primaryLocation": profile.get("primary_location"),
        "offersOnline": profile.get("offers_online"),
        "phoneNumber": profile.get("phone_number"),
        "emailAddress": profile.get("email_address"),
        "dateOfBirth": profile.get("date_of_birth"),
        "completionStatus": profile.get("profile_completion_status"),
        "createdAt": profile.get("created_at"),
        "updatedAt": profile.get("updated_at"),
    }


def complete_profile_view(row: Dict[str, Any]) -> Dict[str, Any]:
    view = {
        "id": row["id"],
        "userId": row.get("user_id"),
        "profilePhoto": row.get("profile_photo_url"),
        "practiceDetails": {
            "practiceType": row.get("practice_type"),
            "sessionLength": row.get("session_length"),
            "availabilityHours": row.get("availability_hours"),
            "emergencyProtocol": row.get("emergency_protocol"),
        },
        "insuranceInformation": {
            "acceptsInsurance": row.get("accepts_insurance"),
            "insurancePlans": row.get("insurance_plans") or [],
            "outOfNetworkSupported": row.get("out_of_network_supported"),
        },
        "completionDate": row.get("completion_date"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }
    for column, field in COMPLETE_PROFILE_FIELDS.items():
        if column != "profile_photo_url" and column not in COMPLETE_NESTED_COLUMNS:
            view[field] = row.get(column)
    for column, field in COMPLETE_OTHER_FIELDS.items():
        view[field] = row.get(column)
    return view


def display_title(profile: Dict[str, Any]) -> Optional[str]:
    if profile.get("title") == "Other" and profile.get("other_title"):
        return profile["other_title"]
    return profile.get("title")


def to_summary(profile: Dict[str, Any], complete: Optional[Dict[str, Any]]) -> TherapistSummary:
    complete = complete or {}
    return TherapistSummary(
        id=profile["id"],
        fullName=profile.get("full_name"),
        title=profile.get("title"),
        degrees=profile.get("degrees") or [],
        primaryLocation=profile.get("primary_location"),
        genderIdentity=profile.get("gender_identity"),
        yearsOfExperience=profile.get("years_of_experience"),
        languagesSpoken=profile.get("languages_spoken") or [],
        profilePhotoUrl=complete.get("profile_photo_url"),
        personalStatement=complete.get("personal_statement"),
        mentalHealthSpecialties=complete.get("mental_health_specialties") or [],
        treatmentApproaches=complete.get("treatment_approaches") or [],
        ageRangesTreated=complete.get("age_ranges_treated") or [],
        lgbtqAffirming=complete.get("lgbtq_affirming"),
        sessionFees=complete.get("session_fees"),
    )


class TherapistService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _complete_profiles(self, therapist_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not therapist_ids:
            return {}
        result = self.supabase.table("s2_complete_profiles")\
            .select("*")\
            .in_("therapist_profile_id", therapist_ids)\
            .eq("is_active", True)\
            .execute()
        return {row["therapist_profile_id"]: row for row in (result.data or [])}

    def search(
        self,
        q: Optional[str] = None,
        specialty: Optional[str] = None,
        title: Optional[str] = None,
        gender: Optional[str] = None,
        experience: Optional[str] = None,
        language: Optional[str] = None,
        location: Optional[str] = None
    ) -> TherapistSearchResponse:
        try:
            query = self.supabase.table("s2_therapist_profiles")\
                .select(PROFILE_COLUMNS)\
                .eq("is_active", True)
            if q:
                query = query.or_(f"full_name.ilike.%{q}%,primary_location.ilike.%{q}%")
            if location:
                query = query.ilike("primary_location", f"%{location}%")
            if title:
                query = query.eq("title", title)
            if gender:
                query = query.eq("gender_identity", gender)
            if experience:
                query = query.eq("years_of_experience", experience)
            if language:
                query = query.contains("languages_spoken", [language])
            browse_mode = not any([q, specialty, title, gender, experience, language, location])
            if browse_mode:
                query = query.order("created_at", desc=True).limit(BROWSE_LIMIT)
            profiles = query.execute().data or []

            completes = self._complete_profiles([p["id"] for p in profiles])
            therapists = [to_summary(p, completes.get(p["id"])) for p in profiles]
            if specialty:
                therapists = [t for t in therapists if specialty in t.mentalHealthSpecialties]
            return TherapistSearchResponse(therapists=therapists, total=len(therapists))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch therapists: {str(e)}")

    def get_detailed(self, therapist_id: str) -> Dict[str, Any]:
        try:
            profile = first_row(self.supabase.table("s2_therapist_profiles")
                                .select("*")
                                .eq("id", therapist_id)
                                .limit(1)
                                .execute())
            if not profile:
                raise HTTPException(status_code=404, detail="Therapist not found")
            complete = first_row(self.supabase.table("s2_complete_profiles")
                                 .select("*")
                                 .eq("therapist_profile_id", therapist_id)
                                 .limit(1)
                                 .execute())
            therapist = {"id": profile["id"], "title": display_title(profile)}
            for column, field in BASIC_PROFILE_FIELDS.items():
                therapist[field] = profile.get(column)
            if complete:
                for column, field in COMPLETE_PROFILE_FIELDS.items():
                    therapist[field] = complete.get(column)
            return {"success": True, "therapist": therapist}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch therapist: {str(e)}")

    def _provider_profile(self, user_id: str, columns: str) -> Dict[str, Any]:
        profile = first_row(self.supabase.table("s2_therapist_profiles")
                            .select(columns)
                            .eq("user_id", user_id)
                            .limit(1)
                            .execute())
        if not profile:
            raise HTTPException(status_code=404, detail="Provider profile not found")
        return profile

    def get_notification_preferences(self, user_id: str) -> ProviderNotificationPreferences:
        """Unset flags default to on when the matching contact exists"""
        try:
            profile = self._provider_profile(
                user_id,
                "notification_phone, phone_number, email_address, email_notifications, sms_notifications"
            )
            phone = profile.get("notification_phone") or profile.get("phone_number") or ""
            email_flag = profile.get("email_notifications")
            sms_flag = profile.get("sms_notifications")
            return ProviderNotificationPreferences(
                phone=phone,
                email_notifications=email_flag if email_flag is not None else bool(profile.get("email_address")),
                sms_notifications=sms_flag if sms_flag is not None else bool(phone),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch provider profile: {str(e)}")

    def update_notification_preferences(self, data: ProviderNotificationPreferencesUpdate) -> Dict[str, Any]:
        if data.sms_notifications and not data.phone:
            raise HTTPException(status_code=400, detail="Phone number is required for SMS notifications")
        try:
            profile = self._provider_profile(data.user_id, "id")
            update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
            if data.phone is not None:
                update_data["notification_phone"] = data.phone or None
            if data.email_notifications is not None:
                update_data["email_notifications"] = data.email_notifications
            if data.sms_notifications is not None:
                update_data["sms_notifications"] = data.sms_notifications
            self.supabase.table("s2_therapist_profiles")\
                .update(update_data)\
                .eq("id", profile["id"])\
                .execute()
            return {"success": True, "message": "Notification preferences updated"}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update notification preferences: {str(e)}")

    def list_for_admin(self) -> Dict[str, Any]:
        try:
            profiles = self.supabase.table("s2_therapist_profiles")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute().data or []
            user_ids = [p["user_id"] for p in profiles if p.get("user_id")]
            completes, licenses = {}, {}
            if user_ids:
                completes = {
                    row["user_id"]: row
                    for row in (self.supabase.table("s2_complete_profiles")
                                .select("*")
                                .in_("user_id", user_ids)
                                .execute().data or [])
                }
                licenses = {
                    row["user_id"]: row
                    for row in (self.supabase.table("s2_license_verifications")
                                .select("*")
                                .in_("user_id", user_ids)
                                .eq("is_active", True)
                                .execute().data or [])
                }
            therapists = [
                AdminTherapist(
                    profile=p,
                    complete_profile=completes.get(p.get("user_id")),
                    license_verification=licenses.get(p.get("user_id")),
                    is_complete=p.get("user_id") in completes,
                )
                for p in profiles
            ]
            return {"success": True, "therapists": [t.model_dump() for t in therapists], "total": len(therapists)}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch therapist profiles: {str(e)}")

    def save_profile(self, data: TherapistProfileRequest) -> Dict[str, Any]:
        """Create or update the basic therapist profile (one per user)"""
        try:
            result = self.supabase.table("s2_therapist_profiles").upsert({
                "user_id": data.userId,
                "full_name": data.fullName,
                "title": data.title,
                "degrees": data.degrees,
                "primary_location": data.primaryLocation,
                "offers_online": data.offersOnline,
                "phone_number": data.phoneNumber or None,
                "email_address": data.emailAddress or None,
                "date_of_birth": data.dateOfBirth or None,
                "profile_completion_status": "profile_complete"
            }, on_conflict="user_id").execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save therapist profile")
            profile = result.data[0]
            logger.info(f"Therapist profile saved: {profile['id']}")
            return {"success": True, "profile": profile_view(profile)}
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to save therapist profile: {str(e)}")

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        try:
            profile = first_row(self.supabase.table("s2_therapist_profiles")
                                .select("*")
                                .eq("user_id", user_id)
                                .limit(1)
                                .execute())
            return {"success": True, "profile": profile_view(profile) if profile else None}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch therapist profile: {str(e)}")

    def save_complete_profile(self, data: CompleteProfileRequest) -> Dict[str, Any]:
        """Create or update the active complete profile; the basic profile must exist first"""
        try:
            therapist = first_row(self.supabase.table("s2_therapist_profiles")
                                  .select("id")
                                  .eq("user_id", data.userId)
                                  .limit(1)
                                  .execute())
            if not therapist:
                raise HTTPException(
                    status_code=400,
                    detail="Therapist profile must be created before complete profile"
                )
            existing = first_row(self.supabase.table("s2_complete_profiles")
                                 .select("id")
                                 .eq("therapist_profile_id", therapist["id"])
                                 .eq("is_active", True)
                                 .limit(1)
                                 .execute())

            practice = data.practiceDetails
            insurance = data.insuranceInformation
            payload = {
                "user_id": data.userId,
                "therapist_profile_id": therapist["id"],
                "profile_photo_url": data.profilePhoto or None,
                "personal_statement": data.personalStatement,
                "mental_health_specialties": data.mentalHealthSpecialties,
                "treatment_approaches": data.treatmentApproaches,
                "age_ranges_treated": data.ageRangesTreated,
                "practice_type": practice.practiceType,
                "session_length": practice.sessionLength or None,
                "availability_hours": practice.availabilityHours or None,
                "emergency_protocol": practice.emergencyProtocol or None,
                "accepts_insurance": insurance.acceptsInsurance,
                "insurance_plans": insurance.insurancePlans,
                "out_of_network_supported": insurance.outOfNetworkSupported,
                "client_types_served": data.clientTypesServed or None,
                "lgbtq_affirming": data.lgbtqAffirming,
                "religious_spiritual_integration": data.religiousSpiritualIntegration or None,
                "session_fees": data.sessionFees or None,
                "board_certifications": data.boardCertifications or None,
                "professional_memberships": data.professionalMemberships or None,
                "other_mental_health_specialty": data.otherMentalHealthSpecialty or None,
                "other_treatment_approach": data.otherTreatmentApproach or None,
                "other_religious_spiritual_integration": data.otherReligiousSpiritualIntegration or None,
                "other_board_certification": data.otherBoardCertification or None,
                "other_professional_membership": data.otherProfessionalMembership or None,
                "is_active": True,
                "completion_date": datetime.now(timezone.utc).isoformat()
            }
            if existing:
                result = self.supabase.table("s2_complete_profiles")\
                    .update(payload)\
                    .eq("id", existing["id"])\
                    .execute()
            else:
                result = self.supabase.table("s2_complete_profiles").insert(payload).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save complete profile")
            logger.info(f"Complete profile saved for therapist {therapist['id']}")
            return {
                "success": True,
                "therapistProfileId": therapist["id"],
                "completeProfile": complete_profile_view(result.data[0]),
            }
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to save complete profile: {str(e)}")

    def get_complete_profile(self, user_id: str) -> Dict[str, Any]:
        try:
            row = first_row(self.supabase.table("s2_complete_profiles")
                            .select("*")
                            .eq("user_id", user_id)
                            .eq("is_active", True)
                            .limit(1)
                            .execute())
            return {"success": True, "completeProfile": complete_profile_view(row) if row else None}
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to fetch complete profile: {str(e)}")
