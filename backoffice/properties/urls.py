from django.urls import path

from properties import views

urlpatterns = [
    path('', views.draft_list, name='draft_list'),
    path('<str:draft_id>/', views.draft_detail, name='draft_detail'),
]
