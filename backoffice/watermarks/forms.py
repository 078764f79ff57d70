from django import forms

from watermarks.models import Watermark


class WatermarkForm(forms.Form):
    name = forms.CharField(max_length=200)
    type = forms.ChoiceField(choices=Watermark.Type.choices, required=False)
    text = forms.CharField(required=False, strip=False)
    text_color = forms.CharField(max_length=32, required=False)
    position = forms.CharField(max_length=32, required=False)
    opacity = forms.FloatField(min_value=0.0, max_value=1.0, required=False)
    scale = forms.FloatField(min_value=0.0, max_value=1.0, required=False)
    rotation = forms.FloatField(required=False)
    blend_mode = forms.CharField(max_length=32, required=False)


class WatermarkUpdateForm(WatermarkForm):
    # The type of a watermark is fixed once created
    type = None
