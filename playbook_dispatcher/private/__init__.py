"""Operations behind the internal run creation, cancelation and status API."""