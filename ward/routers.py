"""
URL mappings for the ward API.

Paths mirror the front-end contract (Portuguese resource names).  Note
that trailing slashes are deliberately omitted.
"""
from django.urls import path, include

from .views import admissions, associations, health, notes

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Admissions
    path('api/internacoes', admissions.admissions, name='admissions'),
    path('api/internacoes/<int:pk>', admissions.admission_detail, name='admission_detail'),
    path('api/internacoes/<int:pk>/acesso', admissions.admission_access, name='admission_access'),
    path('api/internacoes/<int:pk>/alta', admissions.admission_discharge, name='admission_discharge'),

    # Progress notes
    path('api/evolucoes', notes.progress_notes, name='progress_notes'),
    path('api/evolucoes/<int:pk>', notes.progress_note_delete, name='progress_note_delete'),

    # Access associations
    path('api/associacoes', associations.associations, name='associations'),
    path('api/associacoes/minhas', associations.my_associations, name='my_associations'),
    path('api/associacoes/minhas/<int:pk>', associations.my_association_detail, name='my_association_detail'),
    path('api/associacoes/<int:pk>', associations.association_delete, name='association_delete'),
    path('api/associacoes/<int:pk>/aprovar', associations.association_approve, name='association_approve'),
    path('api/associacoes/<int:pk>/rejeitar', associations.association_reject, name='association_reject'),
]
