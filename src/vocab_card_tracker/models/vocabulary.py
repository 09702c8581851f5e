"""Read-only vocabulary content models (level manifests)."""

from pydantic import AliasChoices, BaseModel, Field, model_validator


class ExampleSentence(BaseModel):
    english: str
    translation: str = Field(default="", validation_alias=AliasChoices("translation", "chinese"))


class VocabularyWord(BaseModel):
    id: int
    word: str
    meaning: str
    # Filled from the enclosing manifest when a word omits it
    level: int | None = None
    filename: str = ""
    image_path: str | None = Field(
        default=None, validation_alias=AliasChoices("image_path", "imagePath")
    )
    examples: list[ExampleSentence] = Field(default_factory=list)


class LevelMetadata(BaseModel):
    level: int
    level_name: str = Field(validation_alias=AliasChoices("level_name", "levelName"))
    total_words: int = Field(validation_alias=AliasChoices("total_words", "totalWords"))


class LevelManifest(LevelMetadata):
    results: list[VocabularyWord] = Field(
        default_factory=list, validation_alias=AliasChoices("results", "words")
    )

    @model_validator(mode="after")
    def inherit_word_level(self) -> "LevelManifest":
        for word in self.results:
            if word.level is None:
                word.level = self.level
        return self

    @property
    def metadata(self) -> LevelMetadata:
        return LevelMetadata(
            level=self.level, level_name=self.level_name, total_words=self.total_words
        )


class FlashCard(BaseModel):
    """Card-ready view of a vocabulary word."""

    id: int
    word: str
    meaning: str
    level: int
    image_path: str
    examples: list[ExampleSentence] = Field(default_factory=list)
