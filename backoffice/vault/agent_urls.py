from django.urls import path
from . import views

urlpatterns = [
    path('', views.agent_password_list, name='agent_password_list'),
    path('<str:record_id>/', views.agent_password_detail, name='agent_password_detail'),
]
