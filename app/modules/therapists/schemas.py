from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class TherapistSummary(BaseModel):
    id: str
    fullName: Optional[str] = None
    title: Optional[str] = None
    degrees: List[str] = []
    primaryLocation: Optional[str] = None
    genderIdentity: Optional[str] = None
    yearsOfExperience: Optional[Any] = None
    languagesSpoken: List[str] = []
    profilePhotoUrl: Optional[str] = None
    personalStatement: Optional[str] = None
    mentalHealthSpecialties: List[str] = []
    treatmentApproaches: List[str] = []
    ageRangesTreated: List[str] = []
    lgbtqAffirming: Optional[bool] = None
    sessionFees: Optional[Any] = None


class TherapistSearchResponse(BaseModel):
    success: bool = True
    therapists: List[TherapistSummary]
    total: int


class DetailedRequest(BaseModel):
    therapistId: str = Field(..., min_length=1)


class ProviderNotificationPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None
    email_notifications: bool = Field(False, alias="emailNotifications")
    sms_notifications: bool = Field(False, alias="smsNotifications")


class ProviderNotificationPreferencesUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email_notifications: Optional[bool] = Field(None, alias="emailNotifications")
    sms_notifications: Optional[bool] = Field(None, alias="smsNotifications")


class AdminTherapist(BaseModel):
    profile: Dict[str, Any]
    complete_profile: Optional[Dict[str, Any]] = None
    license_verification: Optional[Dict[str, Any]] = None
    is_complete: bool = False


class TherapistProfileRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    fullName: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    degrees: List[str] = Field(..., min_length=1)
    primaryLocation: str = Field(..., min_length=1)
    offersOnline: bool = False
    phoneNumber: Optional[str] = None
    emailAddress: Optional[str] = None
    dateOfBirth: Optional[str] = None


class PracticeDetails(BaseModel):
    practiceType: str = Field(..., min_length=1)
    sessionLength: Optional[str] = None
    availabilityHours: Optional[str] = None
    emergencyProtocol: Optional[str] = None


class InsuranceInformation(BaseModel):
    acceptsInsurance: bool = False
    insurancePlans: List[str] = []
    outOfNetworkSupported: bool = False


class CompleteProfileRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    profilePhoto: Optional[str] = None
    personalStatement: str = Field(..., min_length=100)
    mentalHealthSpecialties: List[str] = Field(..., min_length=1)
    otherMentalHealthSpecialty: Optional[str] = None
    treatmentApproaches: List[str] = Field(..., min_length=1)
    otherTreatmentApproach: Optional[str] = None
    ageRangesTreated: List[str] = Field(..., min_length=1)
    practiceDetails: PracticeDetails
    insuranceInformation: InsuranceInformation = InsuranceInformation()
    clientTypesServed: Optional[List[str]] = None
    lgbtqAffirming: bool = False
    religiousSpiritualIntegration: Optional[str] = None
    otherReligiousSpiritualIntegration: Optional[str] = None
    sessionFees: Optional[str] = None
    boardCertifications: Optional[List[str]] = None
    otherBoardCertification: Optional[str] = None
    professionalMemberships: Optional[List[str]] = None
    otherProfessionalMembership: Optional[str] = None
