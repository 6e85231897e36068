# userprofile/forms.py
from django import forms
from django.contrib.auth.forms import UserCreationForm, AuthenticationForm
from django.contrib.auth.models import User


class RegistrationForm(UserCreationForm):
    email = forms.EmailField(max_length=254, required=True, label="Email")
    display_name = forms.CharField(max_length=80, required=False)

    class Meta:
        model = User
        fields = ("email", "password1", "password2")

    def clean_email(self):
        email = self.cleaned_data.get("email").lower()
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("An account with this email already exists.")
        return email

    def save(self, commit=True):
        user = super().save(commit=False)
        # The auth User still needs a unique username; derive one from the email
        email = self.cleaned_data["email"]
        base = email.split("@")[0][:20] or "user"
        candidate = base
        i = 0
        while User.objects.filter(username=candidate).exists():
            i += 1
            candidate = f"{base}{i}"
        user.username = candidate
        user.email = email
        if commit:
            user.save()
            display_name = self.cleaned_data.get("display_name")
            if display_name:
                user.profile.display_name = display_name
                user.profile.save(update_fields=["display_name"])
        return user


class EmailAuthenticationForm(AuthenticationForm):
    """
    Login with email + password, but still authenticates against the user's username internally.
    """
    username = forms.EmailField(label="Email")

    def clean(self):
        email = self.cleaned_data.get("username")
        password = self.cleaned_data.get("password")
        if email and password:
            user = User.objects.filter(email__iexact=email).first()
            if user:
                self.cleaned_data["username"] = user.username
        return super().clean()
