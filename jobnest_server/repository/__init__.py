"""Mongo access for collections owned by other services (Jobseeker, Employeer)."""
