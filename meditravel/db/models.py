# meditravel/db/models.py
"""
Supabase does not require ORM model classes.
Tables in the hosted project:

Table: destinations_meditravel
- id (uuid, PK)
- name, city, country, description, image_url (text)
- rating (numeric)
- savings_percentage (int)
- featured (bool)

Table: treatments_meditravel
- id (uuid, PK)
- name, category, icon_name, color, description (text)
- procedure_count (int)

Table: bookings_meditravel
- id (uuid, PK)
- user_id (uuid, FK → auth.users)
- destination_id (FK → destinations_meditravel.id)
- treatment_id (FK → treatments_meditravel.id)
- booking_date (date)
- notes (text)
- status (text: pending | confirmed | completed | cancelled)
- created_at (timestamp)

Table: reviews_meditravel
- id, user_id, destination_id, treatment_id
- rating (int 1-5), comment (text), created_at

Table: patient_journeys_emirafrik
- id (uuid, PK)
- user_id (uuid, unique)
- journey_stage (text, one of the 16 journey stages)
- current_step, total_steps (int)

Table: journey_milestones_emirafrik
- id (uuid, PK)
- journey_id (FK → patient_journeys_emirafrik.id)
- milestone_type, milestone_title, milestone_description (text)
- completed (bool), due_date (date), completed_at, created_at (timestamp)

Table: medical_history_emirafrik
- user_id (uuid, unique)
- medical_conditions, current_medications, allergies,
  previous_surgeries, family_history (text[])
- lifestyle_factors, emergency_contacts, insurance_information (jsonb)
- updated_at (timestamp)

Table: support_tickets_emirafrik
- id, user_id, subject, description, priority, category, status

Table: user_profiles_meditravel
- id (uuid, PK, same as auth.users.id)
- first_name, last_name, phone_number, address, city, country (text)
- date_of_birth (date)
- avatar_url (text, public URL in the "profiles" storage bucket)
- medical_history (text, free-form notes)
- created_at, updated_at (timestamp)

Procedure: advance_patient_journey(p_user_id uuid, p_new_stage text)
"""

DESTINATIONS_TABLE = "destinations_meditravel"
TREATMENTS_TABLE = "treatments_meditravel"
BOOKINGS_TABLE = "bookings_meditravel"
REVIEWS_TABLE = "reviews_meditravel"
JOURNEYS_TABLE = "patient_journeys_emirafrik"
MILESTONES_TABLE = "journey_milestones_emirafrik"
MEDICAL_HISTORY_TABLE = "medical_history_emirafrik"
SUPPORT_TICKETS_TABLE = "support_tickets_emirafrik"
PROFILES_TABLE = "user_profiles_meditravel"
AVATAR_BUCKET = "profiles"

ADVANCE_JOURNEY_RPC = "advance_patient_journey"

BOOKING_STATUSES = ["pending", "confirmed", "completed", "cancelled"]
