# i18n.py
import locale

MESSAGES = {
    "en": {
        "invalid_link": "Invalid playlist URL",
        "no_videos": "No videos found in playlist",
        "playlist_not_found": "Playlist not found",
        "source_unavailable": "Playlist source unavailable: {error}",
        "archive_error": "Could not create archive: {error}",
        "output_dir_error": "Could not create output directory: {error}",
        "run_cancelled": "Download cancelled",
        "unexpected_error": "Unexpected error: {error}",
        "config_error": "Invalid configuration: {error}",
        "auth_error": "Authentication failed: {error}",
        "preparing_download": "Preparing to download playlist...",
        "progress": "Downloading {completed} of {total} songs...",
        "download_complete": "Download complete: {archive_path}",
        "download_error": "Error: {error}",
        "items_skipped": "{count} item(s) skipped.",
        "cancelling": "Cancelling after the current item...",
        "help_download_url": "URL of the playlist to download.",
        "help_music_root": "Directory receiving the playlist folder and archive.",
        "help_format": "Audio format of the produced files (mp3 or m4a).",
        "help_quality": "Audio bitrate in kbps.",
        "help_config": "YAML configuration file.",
        "help_api_key": "YouTube Data API key.",
        "help_source": "Playlist source: 'ytdlp' or 'youtube-api'.",
        "help_timeout": "Seconds allowed for each stream negotiation.",
        "help_verbose": "Show debug logs.",
        "help_lang": "Set the language for output messages (e.g., 'en' or 'fr').",
    },
    "fr": {
        "invalid_link": "URL de playlist invalide",
        "no_videos": "Aucune vidéo trouvée dans la playlist",
        "playlist_not_found": "Playlist introuvable",
        "source_unavailable": "Source de la playlist indisponible : {error}",
        "archive_error": "Impossible de créer l'archive : {error}",
        "output_dir_error": "Impossible de créer le dossier de sortie : {error}",
        "run_cancelled": "Téléchargement annulé",
        "unexpected_error": "Erreur inattendue : {error}",
        "config_error": "Configuration invalide : {error}",
        "auth_error": "Échec de l'authentification : {error}",
        "preparing_download": "Préparation du téléchargement de la playlist...",
        "progress": "Téléchargement de {completed} sur {total} morceaux...",
        "download_complete": "Téléchargement terminé : {archive_path}",
        "download_error": "Erreur : {error}",
        "items_skipped": "{count} élément(s) ignoré(s).",
        "cancelling": "Annulation après l'élément en cours...",
        "help_download_url": "URL de la playlist à télécharger.",
        "help_music_root": "Dossier recevant le dossier de la playlist et l'archive.",
        "help_format": "Format audio des fichiers produits (mp3 ou m4a).",
        "help_quality": "Débit audio en kbps.",
        "help_config": "Fichier de configuration YAML.",
        "help_api_key": "Clé de l'API YouTube Data.",
        "help_source": "Source de la playlist : 'ytdlp' ou 'youtube-api'.",
        "help_timeout": "Secondes accordées à chaque négociation de flux.",
        "help_verbose": "Afficher les logs de débogage.",
        "help_lang": "Définit la langue des messages de sortie (ex: 'en' ou 'fr').",
    }
}

_current_lang = "en"

def get_default_lang():
    try:
        lang_code, _ = locale.getlocale()
        return "fr" if lang_code and lang_code.startswith("fr") else "en"
    except (ValueError, TypeError):
        return "en"

def set_lang(lang: str):
    global _current_lang
    _current_lang = lang if lang in MESSAGES else "en"

def get_lang() -> str:
    return _current_lang

def get_message(key, **kwargs):
    lang = _current_lang
    if lang not in MESSAGES or key not in MESSAGES[lang]:
        # Fallback to English if key not found in current language
        lang = "en"

    message_template = MESSAGES[lang].get(key, f"Translation missing for key: {key}")

    try:
        return message_template.format(**kwargs)
    except KeyError as e:
        # A placeholder is missing in kwargs
        return f"Formatting error for key '{key}': missing placeholder {e}"

# Initialize with default system language
set_lang(get_default_lang())
