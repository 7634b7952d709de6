"""Django project package for the InfoCare ward records backend."""
