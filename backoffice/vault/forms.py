from django import forms

from core.http import StringListField


class PasswordEntryForm(forms.Form):
    title = forms.CharField(max_length=200)
    username = forms.CharField(strip=False)
    password = forms.CharField(strip=False)
    note = forms.CharField(required=False)
    access_ids = StringListField(required=False)


class AgentPasswordForm(forms.Form):
    agent_id = forms.CharField()
    email = forms.CharField(max_length=255)
    password = forms.CharField(strip=False)
