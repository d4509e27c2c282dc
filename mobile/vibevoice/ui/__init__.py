"""UI collaborators: amplitude history and the Kivy overlay."""
