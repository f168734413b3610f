"""MediTravel: medical-tourism booking app on Streamlit and Supabase."""

__version__ = "0.1.0"
